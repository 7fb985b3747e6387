"""
Unit tests for the token/session helpers.
"""

from datetime import timedelta

from healthportal.api import auth
from healthportal.api.auth import (
    cleanup_expired_sessions,
    open_session,
    refresh_user_sessions,
    revoke_user_sessions,
    sessions,
    verify_token,
)
from healthportal.models import Principal


def principal(user_id: int, role: str = "patient") -> Principal:
    return Principal(user_id=user_id, name=f"User {user_id}", email=f"u{user_id}@example.com", role=role)


# ── Tests: tokens ────────────────────────────────────────────────────

def test_open_session_issues_verifiable_token():
    token = open_session(principal(1))
    payload = verify_token(token)
    assert payload["user_id"] == 1
    assert payload["role"] == "patient"
    assert sessions[token]["principal"].user_id == 1


def test_verify_token_rejects_garbage():
    assert verify_token("not.a.token") is None


# ── Tests: session maintenance ───────────────────────────────────────

def test_refresh_replaces_principal_in_every_session_of_that_user():
    a1 = open_session(principal(1))
    a2 = open_session(principal(1))
    b = open_session(principal(2))

    refresh_user_sessions(principal(1, role="doctor"))

    assert sessions[a1]["principal"].role == "doctor"
    assert sessions[a2]["principal"].role == "doctor"
    assert sessions[b]["principal"].role == "patient"


def test_revoke_removes_only_that_users_sessions():
    open_session(principal(1))
    open_session(principal(1))
    keep = open_session(principal(2))

    assert revoke_user_sessions(1) == 2
    assert list(sessions) == [keep]
    assert revoke_user_sessions(1) == 0


def test_cleanup_drops_inactive_sessions(capsys):
    stale = open_session(principal(1))
    fresh = open_session(principal(2))
    sessions[stale]["last_activity"] -= timedelta(hours=auth.TOKEN_EXPIRY_HOURS + 1)

    assert cleanup_expired_sessions() == 1
    assert stale not in sessions
    assert fresh in sessions
    assert "[cleanup] Removed 1 expired sessions" in capsys.readouterr().out


def test_cleanup_with_nothing_expired_is_silent(capsys):
    open_session(principal(1))
    assert cleanup_expired_sessions() == 0
    assert capsys.readouterr().out == ""
