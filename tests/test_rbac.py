"""
Unit tests for RBAC – the access gate and route policies.
"""

import pytest

from healthportal.errors import Forbidden, Unauthenticated
from healthportal.models import Principal
from healthportal.rbac import (
    ALLOW,
    AUTHENTICATED,
    DENY,
    USER_LIST,
    USER_READ,
    USER_WRITE,
    AccessRule,
    RoutePolicy,
    authorize,
)


def principal(role: str) -> Principal:
    return Principal(user_id=1, name=role.title(), email=f"{role}@example.com", role=role)


# ── Tests: unauthenticated ───────────────────────────────────────────

@pytest.mark.parametrize("policy", [AUTHENTICATED, USER_LIST, USER_READ, USER_WRITE])
@pytest.mark.parametrize("query", [{}, {"role": "doctor"}])
def test_missing_principal_is_unauthenticated(policy, query):
    with pytest.raises(Unauthenticated):
        authorize(None, policy, query)


# ── Tests: user listing exception ────────────────────────────────────

@pytest.mark.parametrize("query", [{}, {"role": "patient"}, {"role": "admin"}, {"name": "doctor"}])
def test_patient_listing_users_without_doctor_filter_is_forbidden(query):
    with pytest.raises(Forbidden):
        authorize(principal("patient"), USER_LIST, query)


def test_patient_listing_doctors_passes():
    assert authorize(principal("patient"), USER_LIST, {"role": "doctor"}) is None


@pytest.mark.parametrize("role", ["admin", "doctor"])
@pytest.mark.parametrize("query", [{}, {"role": "patient"}, {"role": "doctor"}, {"role": "anything"}])
def test_staff_listing_users_passes_regardless_of_filters(role, query):
    assert authorize(principal(role), USER_LIST, query) is None


def test_doctor_filter_exception_does_not_extend_to_other_routes():
    with pytest.raises(Forbidden):
        authorize(principal("patient"), USER_READ, {"role": "doctor"})
    with pytest.raises(Forbidden):
        authorize(principal("patient"), USER_WRITE, {"role": "doctor"})


# ── Tests: allow-lists ───────────────────────────────────────────────

@pytest.mark.parametrize("role", ["patient", "doctor", "admin"])
def test_authenticated_policy_admits_every_role(role):
    assert authorize(principal(role), AUTHENTICATED) is None


@pytest.mark.parametrize("role,allowed", [("patient", False), ("doctor", True), ("admin", True)])
def test_user_read_allow_list(role, allowed):
    if allowed:
        authorize(principal(role), USER_READ)
    else:
        with pytest.raises(Forbidden):
            authorize(principal(role), USER_READ)


@pytest.mark.parametrize("role,allowed", [("patient", False), ("doctor", False), ("admin", True)])
def test_user_write_allow_list(role, allowed):
    if allowed:
        authorize(principal(role), USER_WRITE)
    else:
        with pytest.raises(Forbidden):
            authorize(principal(role), USER_WRITE)


def test_forbidden_carries_no_detail():
    with pytest.raises(Forbidden) as e:
        authorize(principal("patient"), USER_WRITE)
    assert e.value.to_dict() == {"success": False, "error": "Forbidden"}
    assert e.value.status_code == 403


# ── Tests: rule ordering ─────────────────────────────────────────────

def test_first_matching_rule_wins():
    always = lambda p, q: True  # noqa: E731
    allow_first = RoutePolicy(
        allowed_roles=frozenset(),
        rules=(AccessRule("open", always, ALLOW), AccessRule("closed", always, DENY)),
    )
    deny_first = RoutePolicy(
        allowed_roles=frozenset({"admin"}),
        rules=(AccessRule("closed", always, DENY), AccessRule("open", always, ALLOW)),
    )
    assert authorize(principal("patient"), allow_first) is None
    with pytest.raises(Forbidden):
        authorize(principal("admin"), deny_first)


def test_non_matching_rules_fall_back_to_allow_list():
    never = AccessRule("never", lambda p, q: False, DENY)
    policy = RoutePolicy(allowed_roles=frozenset({"doctor"}), rules=(never,))
    assert authorize(principal("doctor"), policy) is None
    with pytest.raises(Forbidden):
        authorize(principal("patient"), policy)
