"""
Shared fixtures: an in-memory SQLite engine and account helpers.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from healthportal import store
from healthportal.api.auth import hash_password, open_session, sessions
from healthportal.database import init_schema
from healthportal.models import Principal

PASSWORD = "Secret123"


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture(autouse=True)
def clear_sessions():
    sessions.clear()
    yield
    sessions.clear()


@pytest.fixture
def make_user(engine):
    """Create a user and return (row, token)."""
    counter = {"n": 0}

    def _make(role: str = "patient", name: str = None, email: str = None, **extra):
        counter["n"] += 1
        row = store.create_user(
            engine,
            name=name or f"{role.title()} {counter['n']}",
            email=email or f"{role}{counter['n']}@example.com",
            password_hash=hash_password(PASSWORD),
            role=role,
            **extra,
        )
        return row, open_session(Principal.from_row(row))

    return _make


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
