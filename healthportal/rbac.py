"""
Role-Based Access Control – route policies and the access gate.

A route policy is an ordered list of (predicate, effect) exception rules,
evaluated first-match-wins, backed by a static allow-list of roles.
"""

from dataclasses import dataclass
from functools import wraps
from typing import Callable, FrozenSet, Mapping, Optional, Tuple

from flask import request

from healthportal.errors import Forbidden, Unauthenticated
from healthportal.models import Principal

ALLOW = "allow"
DENY = "deny"


@dataclass(frozen=True)
class AccessRule:
    """A route-specific exception checked before the role allow-list."""
    name: str
    predicate: Callable[[Principal, Mapping[str, str]], bool]
    effect: str = ALLOW

    def matches(self, principal: Principal, query: Mapping[str, str]) -> bool:
        return bool(self.predicate(principal, query))


@dataclass(frozen=True)
class RoutePolicy:
    """Access requirements for one route.

    ``allowed_roles`` of None admits any authenticated principal.
    """
    allowed_roles: Optional[FrozenSet[str]] = None
    rules: Tuple[AccessRule, ...] = ()


def authorize(principal: Optional[Principal], policy: RoutePolicy,
              query: Optional[Mapping[str, str]] = None) -> None:
    """Raise Unauthenticated/Forbidden unless *principal* may use the route."""
    if principal is None:
        raise Unauthenticated()

    query = query if query is not None else {}
    for rule in policy.rules:
        if rule.matches(principal, query):
            if rule.effect == ALLOW:
                return
            raise Forbidden()

    if policy.allowed_roles is None:
        return
    if principal.role not in policy.allowed_roles:
        raise Forbidden()


def require_access(policy: RoutePolicy):
    """Decorator enforcing *policy* against ``request.principal``."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            authorize(getattr(request, "principal", None), policy, request.args)
            return f(*args, **kwargs)
        return decorated
    return decorator


# ── Route policies ───────────────────────────────────────────────────

def _patient_browsing_doctors(principal: Principal, query: Mapping[str, str]) -> bool:
    return principal.role == "patient" and query.get("role") == "doctor"


PATIENT_LISTS_DOCTORS = AccessRule(
    name="patient-lists-doctors",
    predicate=_patient_browsing_doctors,
    effect=ALLOW,
)

AUTHENTICATED = RoutePolicy()

USER_LIST = RoutePolicy(
    allowed_roles=frozenset({"admin", "doctor"}),
    rules=(PATIENT_LISTS_DOCTORS,),
)
USER_READ = RoutePolicy(allowed_roles=frozenset({"admin", "doctor"}))
USER_WRITE = RoutePolicy(allowed_roles=frozenset({"admin"}))
