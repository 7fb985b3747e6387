"""
Unit tests for the field validator and the declared rule sets.
"""

import pytest

from healthportal.errors import ValidationFailed
from healthportal.validation import (
    appointment_rules,
    body,
    check,
    login_rules,
    register_rules,
    symptom_rules,
    user_update_rules,
)


def failures(data, rules):
    with pytest.raises(ValidationFailed) as e:
        check(data, rules)
    return [(err.field, err.message) for err in e.value.errors]


def fields(data, rules):
    return [field for field, _ in failures(data, rules)]


VALID_REGISTRATION = {"name": "A", "email": "x@y.com", "password": "Abcdef12"}


# ── Tests: chain mechanics ───────────────────────────────────────────

def test_chains_are_immutable():
    base = body("x")
    trimmed = base.trim()
    assert base.steps == ()
    assert len(trimmed.steps) == 1


def test_every_check_in_a_chain_runs():
    rules = [
        body("code")
        .is_length(min=5, message="too short")
        .matches(r"\d", "needs a digit"),
    ]
    assert failures({"code": "ab"}, rules) == [
        ("code", "too short"),
        ("code", "needs a digit"),
    ]


def test_optional_absent_field_skips_only_that_field():
    rules = [
        body("nick").optional().not_empty("nick required"),
        body("name").not_empty("name required"),
    ]
    assert failures({}, rules) == [("name", "name required")]


def test_optional_does_not_skip_null_unless_nullable():
    strict = [body("phone").optional().not_empty("phone required")]
    relaxed = [body("phone").optional(nullable=True).not_empty("phone required")]
    assert fields({"phone": None}, strict) == ["phone"]
    assert check({"phone": None}, relaxed) == {"phone": None}


def test_sanitized_values_are_returned():
    cleaned = check({"name": "  Ada  ", "extra": 1}, [body("name").trim()])
    assert cleaned == {"name": "Ada", "extra": 1}


def test_non_dict_body_is_treated_as_empty():
    assert fields(None, [body("name").not_empty("required")]) == ["name"]
    assert fields(["x"], [body("name").not_empty("required")]) == ["name"]


def test_failure_carries_value_and_location():
    with pytest.raises(ValidationFailed) as e:
        check({"role": "nurse"}, [body("role").is_in(["doctor"], "Invalid role")])
    assert e.value.to_dict() == {
        "success": False,
        "errors": [
            {"field": "role", "message": "Invalid role", "value": "nurse", "location": "body"},
        ],
    }


# ── Tests: registration ──────────────────────────────────────────────

def test_register_minimal_input_passes():
    cleaned = check(VALID_REGISTRATION, register_rules)
    assert cleaned["name"] == "A"
    assert cleaned["email"] == "x@y.com"
    assert "role" not in cleaned
    assert "phone" not in cleaned


def test_register_password_without_upper_or_digit_fails():
    data = dict(VALID_REGISTRATION, password="abcdefgh")
    assert fields(data, register_rules) == ["password"]


def test_register_short_password_reports_both_checks():
    data = dict(VALID_REGISTRATION, password="short")
    assert failures(data, register_rules) == [
        ("password", "Password must be at least 8 characters"),
        ("password", "Password must contain at least one uppercase letter, one lowercase letter, and one number"),
    ]


def test_register_reports_every_failing_field():
    assert fields({}, register_rules) == ["name", "email", "password", "password"]


def test_register_name_is_trimmed_and_bounded():
    assert fields(dict(VALID_REGISTRATION, name="   "), register_rules) == ["name"]
    assert fields(dict(VALID_REGISTRATION, name="n" * 101), register_rules) == ["name"]
    assert check(dict(VALID_REGISTRATION, name="n" * 100), register_rules)["name"] == "n" * 100


def test_register_email_is_normalized():
    cleaned = check(dict(VALID_REGISTRATION, email="  John.Doe@Example.COM "), register_rules)
    assert cleaned["email"] == "john.doe@example.com"


def test_register_invalid_email_fails():
    assert fields(dict(VALID_REGISTRATION, email="not-an-email"), register_rules) == ["email"]


@pytest.mark.parametrize("role", ["patient", "doctor", "admin"])
def test_register_accepts_known_roles(role):
    assert check(dict(VALID_REGISTRATION, role=role), register_rules)["role"] == role


def test_register_rejects_unknown_role():
    assert failures(dict(VALID_REGISTRATION, role="nurse"), register_rules) == [("role", "Invalid role")]


@pytest.mark.parametrize("phone", ["+1-555-1234567", "555.123.4567", "(020) 7946 0958", "5551234"])
def test_register_accepts_loose_phone_numbers(phone):
    check(dict(VALID_REGISTRATION, phone=phone), register_rules)


@pytest.mark.parametrize("phone", ["call me", "12-34-56-78-90", "+1 555 123 4567 ext 9"])
def test_register_rejects_bad_phone_numbers(phone):
    assert failures(dict(VALID_REGISTRATION, phone=phone), register_rules) == [("phone", "Invalid phone number")]


# ── Tests: login ─────────────────────────────────────────────────────

def test_login_requires_valid_email_and_password():
    assert fields({"email": "nope", "password": ""}, login_rules) == ["email", "password"]


def test_login_password_has_no_format_rule():
    cleaned = check({"email": "a@example.com", "password": "x"}, login_rules)
    assert cleaned["password"] == "x"


# ── Tests: appointments ──────────────────────────────────────────────

VALID_APPOINTMENT = {
    "doctor": "7",
    "appointmentDate": "2030-05-01",
    "appointmentTime": "10:30",
}


def test_appointment_invalid_date_fails():
    data = dict(VALID_APPOINTMENT, appointmentDate="not-a-date")
    assert failures(data, appointment_rules(False)) == [("appointmentDate", "Invalid date format")]


@pytest.mark.parametrize("value", ["2030-02-30", "2030-13-01", ""])
def test_appointment_rejects_impossible_dates(value):
    data = dict(VALID_APPOINTMENT, appointmentDate=value)
    assert "appointmentDate" in fields(data, appointment_rules(False))


def test_appointment_accepts_iso_datetime():
    check(dict(VALID_APPOINTMENT, appointmentDate="2030-05-01T10:30:00Z"), appointment_rules(False))


def test_appointment_any_doctor_string_passes_when_id_check_disabled():
    cleaned = check(dict(VALID_APPOINTMENT, doctor="dr-house"), appointment_rules(False))
    assert cleaned["doctor"] == "dr-house"


def test_appointment_doctor_id_checked_when_enabled():
    assert failures(dict(VALID_APPOINTMENT, doctor="dr-house"), appointment_rules(True)) == [
        ("doctor", "Invalid doctor ID"),
    ]
    check(VALID_APPOINTMENT, appointment_rules(True))


def test_appointment_rules_follow_config_toggle(monkeypatch):
    from healthportal import config
    monkeypatch.setattr(config, "VALIDATE_DOCTOR_ID", True)
    assert fields(dict(VALID_APPOINTMENT, doctor="x"), appointment_rules()) == ["doctor"]


def test_appointment_doctor_required():
    data = dict(VALID_APPOINTMENT)
    del data["doctor"]
    assert fields(data, appointment_rules(False)) == ["doctor"]


def test_appointment_time_blank_after_trim_fails():
    data = dict(VALID_APPOINTMENT, appointmentTime="   ")
    assert failures(data, appointment_rules(False)) == [("appointmentTime", "Appointment time is required")]


def test_appointment_reason_is_optional_and_bounded():
    check(VALID_APPOINTMENT, appointment_rules(False))
    assert fields(dict(VALID_APPOINTMENT, reason="r" * 501), appointment_rules(False)) == ["reason"]
    cleaned = check(dict(VALID_APPOINTMENT, reason="  checkup  "), appointment_rules(False))
    assert cleaned["reason"] == "checkup"


@pytest.mark.parametrize("value", ["20240115", "2024-W03-1", "2024-01-15T10:00:00.5Z"])
def test_appointment_accepts_other_iso8601_forms(value):
    cleaned = check(dict(VALID_APPOINTMENT, appointmentDate=value), appointment_rules(False))
    assert cleaned["appointmentDate"] == value


def test_appointment_doctor_id_beyond_key_range_fails():
    assert failures(dict(VALID_APPOINTMENT, doctor="9" * 30), appointment_rules(True)) == [
        ("doctor", "Invalid doctor ID"),
    ]
    check(dict(VALID_APPOINTMENT, doctor=str(2**63 - 1)), appointment_rules(True))


def test_appointment_symptoms_are_optional_trimmed_and_bounded():
    cleaned = check(VALID_APPOINTMENT, appointment_rules(False))
    assert "symptoms" not in cleaned
    cleaned = check(dict(VALID_APPOINTMENT, symptoms="  headache  "), appointment_rules(False))
    assert cleaned["symptoms"] == "headache"
    check(dict(VALID_APPOINTMENT, symptoms="s" * 2000), appointment_rules(False))
    assert failures(dict(VALID_APPOINTMENT, symptoms="s" * 2001), appointment_rules(False)) == [
        ("symptoms", "Symptoms description cannot exceed 2000 characters"),
    ]


# ── Tests: symptoms ──────────────────────────────────────────────────

def test_symptoms_nine_characters_fail():
    assert fields({"symptoms": "a" * 9}, symptom_rules) == ["symptoms"]


def test_symptoms_ten_characters_pass():
    assert check({"symptoms": "a" * 10}, symptom_rules)["symptoms"] == "a" * 10


def test_symptoms_are_trimmed_before_length_check():
    assert fields({"symptoms": "   " + "a" * 9 + "   "}, symptom_rules) == ["symptoms"]


def test_symptoms_upper_bound_is_inclusive():
    check({"symptoms": "a" * 2000}, symptom_rules)
    assert fields({"symptoms": "a" * 2001}, symptom_rules) == ["symptoms"]


def test_symptoms_missing_reports_required_and_length():
    assert failures({}, symptom_rules)[0] == ("symptoms", "Symptoms are required")


# ── Tests: user update ───────────────────────────────────────────────

def test_user_update_allows_partial_bodies():
    assert check({}, user_update_rules) == {}
    assert check({"phone": None}, user_update_rules) == {"phone": None}


def test_user_update_validates_present_fields():
    assert fields({"name": " ", "role": "nurse", "phone": "abc"}, user_update_rules) == [
        "name", "role", "phone",
    ]
