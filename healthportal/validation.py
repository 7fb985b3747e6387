"""
Declarative request-body validation.

A rule set is an ordered list of field chains built with ``body(name)``.
Every check in every chain runs, so the caller gets all failures at once::

    rules = [
        body("name").trim().not_empty("Name is required"),
        body("role").optional().is_in(ROLES, "Invalid role"),
    ]
    cleaned = check(payload, rules)
"""

import re
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from dateutil.parser import isoparse
from email_validator import EmailNotValidError, validate_email
from flask import request

from healthportal import config
from healthportal.errors import ValidationFailed
from healthportal.models import FieldError

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PHONE_PATTERN = re.compile(
    r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$"
)

_MISSING = object()


def _as_text(value: Any) -> str:
    if value is None or value is _MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def _is_email(text: str) -> bool:
    try:
        validate_email(text, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _normalize_email(text: str) -> str:
    try:
        normalized = validate_email(text, check_deliverability=False).normalized
    except EmailNotValidError:
        return text
    return normalized.lower()


def _is_iso8601(text: str) -> bool:
    if not text:
        return False
    try:
        isoparse(text)
    except (ValueError, OverflowError):
        return False
    return True


class FieldChain:
    """Ordered sanitizers and checks for a single body field.

    Chains are immutable: each builder call returns a new chain, so rule sets
    can live at module level and be shared between requests.
    """

    def __init__(self, field: str, steps: Tuple = (), optional: bool = False,
                 nullable: bool = False):
        self.field = field
        self.steps = steps
        self.is_optional = optional
        self.nullable = nullable

    def _with(self, step=None, **overrides) -> "FieldChain":
        steps = self.steps + (step,) if step is not None else self.steps
        return FieldChain(
            self.field,
            steps,
            optional=overrides.get("optional", self.is_optional),
            nullable=overrides.get("nullable", self.nullable),
        )

    # ── Modifiers ────────────────────────────────────────────────────

    def optional(self, nullable: bool = False) -> "FieldChain":
        """Skip the whole chain when the field is absent (or null, if *nullable*)."""
        return self._with(optional=True, nullable=nullable)

    # ── Sanitizers ───────────────────────────────────────────────────

    def trim(self) -> "FieldChain":
        return self._with(("sanitize", lambda text: text.strip()))

    def normalize_email(self) -> "FieldChain":
        return self._with(("sanitize", _normalize_email))

    # ── Checks ───────────────────────────────────────────────────────

    def satisfies(self, predicate: Callable[[str], bool], message: str) -> "FieldChain":
        return self._with(("check", predicate, message))

    def not_empty(self, message: str) -> "FieldChain":
        return self.satisfies(lambda text: text != "", message)

    def is_length(self, min: Optional[int] = None, max: Optional[int] = None,
                  message: str = "Invalid length") -> "FieldChain":
        def predicate(text: str) -> bool:
            if min is not None and len(text) < min:
                return False
            if max is not None and len(text) > max:
                return False
            return True
        return self.satisfies(predicate, message)

    def is_email(self, message: str) -> "FieldChain":
        return self.satisfies(_is_email, message)

    def matches(self, pattern: Union[str, "re.Pattern"], message: str) -> "FieldChain":
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        return self.satisfies(lambda text: compiled.search(text) is not None, message)

    def is_in(self, values: Iterable[str], message: str) -> "FieldChain":
        allowed = tuple(values)
        return self.satisfies(lambda text: text in allowed, message)

    def is_iso8601(self, message: str) -> "FieldChain":
        return self.satisfies(_is_iso8601, message)

    def is_int(self, message: str, min: Optional[int] = None,
               max: Optional[int] = None) -> "FieldChain":
        def predicate(text: str) -> bool:
            if not re.fullmatch(r"[+-]?\d+", text):
                return False
            value = int(text)
            if min is not None and value < min:
                return False
            return max is None or value <= max
        return self.satisfies(predicate, message)

    # ── Execution ────────────────────────────────────────────────────

    def run(self, data: Dict[str, Any]) -> Tuple[Any, List[FieldError]]:
        """Apply the chain to *data*; return (sanitized value, failures).

        The sanitized value is ``_MISSING`` when an optional field is absent.
        """
        value = data.get(self.field, _MISSING)
        if self.is_optional and (value is _MISSING or (self.nullable and value is None)):
            return _MISSING, []

        errors: List[FieldError] = []
        for step in self.steps:
            if step[0] == "sanitize":
                value = step[1](_as_text(value))
                continue
            _, predicate, message = step
            if not predicate(_as_text(value)):
                shown = None if value is _MISSING else value
                errors.append(FieldError(field=self.field, message=message, value=shown))
        return value, errors

    def __repr__(self) -> str:
        return f"FieldChain({self.field!r}, steps={len(self.steps)})"


def body(field: str) -> FieldChain:
    """Start a rule chain for a JSON body field."""
    return FieldChain(field)


RuleSet = Sequence[FieldChain]


def check(data: Optional[Dict[str, Any]], rules: RuleSet) -> Dict[str, Any]:
    """Run every chain over *data*; return the sanitized body or raise ValidationFailed."""
    data = data if isinstance(data, dict) else {}
    cleaned = dict(data)
    errors: List[FieldError] = []

    for chain in rules:
        value, failures = chain.run(data)
        errors.extend(failures)
        if value is not _MISSING:
            cleaned[chain.field] = value

    if errors:
        raise ValidationFailed(errors)
    return cleaned


def validate(rules: Union[RuleSet, Callable[[], RuleSet]]):
    """Decorator validating the JSON body before the view runs.

    The sanitized body is attached as ``request.validated``.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            rule_set = rules() if callable(rules) else rules
            payload = request.get_json(silent=True)
            request.validated = check(payload, rule_set)
            return f(*args, **kwargs)
        return decorated
    return decorator


# ── Rule sets ────────────────────────────────────────────────────────

register_rules = [
    body("name")
    .trim()
    .not_empty("Name is required")
    .is_length(max=config.MAX_NAME_LENGTH, message="Name cannot exceed 100 characters"),
    body("email")
    .trim()
    .is_email("Please provide a valid email")
    .normalize_email(),
    body("password")
    .is_length(min=config.MIN_PASSWORD_LENGTH, message="Password must be at least 8 characters")
    .matches(
        PASSWORD_PATTERN,
        "Password must contain at least one uppercase letter, one lowercase letter, and one number",
    ),
    body("role")
    .optional()
    .is_in(config.ROLES, "Invalid role"),
    body("phone")
    .optional()
    .trim()
    .matches(PHONE_PATTERN, "Invalid phone number"),
]

login_rules = [
    body("email")
    .trim()
    .is_email("Please provide a valid email")
    .normalize_email(),
    body("password")
    .not_empty("Password is required"),
]

user_update_rules = [
    body("name")
    .optional()
    .trim()
    .not_empty("Name is required")
    .is_length(max=config.MAX_NAME_LENGTH, message="Name cannot exceed 100 characters"),
    body("email")
    .optional()
    .trim()
    .is_email("Please provide a valid email")
    .normalize_email(),
    body("role")
    .optional()
    .is_in(config.ROLES, "Invalid role"),
    body("phone")
    .optional(nullable=True)
    .trim()
    .matches(PHONE_PATTERN, "Invalid phone number"),
    body("specialization")
    .optional(nullable=True)
    .trim()
    .is_length(max=config.MAX_NAME_LENGTH, message="Specialization cannot exceed 100 characters"),
]


def appointment_rules(check_doctor_id: Optional[bool] = None) -> List[FieldChain]:
    """Rules for booking an appointment.

    The doctor id format check only runs when *check_doctor_id* (default:
    ``config.VALIDATE_DOCTOR_ID``) is on; otherwise any non-empty value passes
    and the handler resolves it.
    """
    if check_doctor_id is None:
        check_doctor_id = config.VALIDATE_DOCTOR_ID

    doctor = body("doctor").not_empty("Doctor is required")
    if check_doctor_id:
        doctor = doctor.is_int("Invalid doctor ID", min=1, max=config.MAX_RECORD_ID)

    return [
        doctor,
        body("appointmentDate")
        .not_empty("Appointment date is required")
        .is_iso8601("Invalid date format"),
        body("appointmentTime")
        .trim()
        .not_empty("Appointment time is required"),
        body("reason")
        .optional()
        .trim()
        .is_length(max=config.MAX_REASON_LENGTH, message="Reason cannot exceed 500 characters"),
        body("symptoms")
        .optional()
        .trim()
        .is_length(
            max=config.MAX_SYMPTOMS_LENGTH,
            message="Symptoms description cannot exceed 2000 characters",
        ),
    ]


appointment_status_rules = [
    body("status")
    .not_empty("Status is required")
    .is_in(config.APPOINTMENT_STATUSES, "Invalid status"),
]

symptom_rules = [
    body("symptoms")
    .trim()
    .not_empty("Symptoms are required")
    .is_length(
        min=config.MIN_SYMPTOMS_LENGTH,
        message="Please provide at least 10 characters describing your symptoms",
    )
    .is_length(
        max=config.MAX_SYMPTOMS_LENGTH,
        message="Symptoms description cannot exceed 2000 characters",
    ),
]
