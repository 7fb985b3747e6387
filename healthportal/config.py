"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean toggle such as ``VALIDATE_DOCTOR_ID=true``."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# ── Roles / statuses ─────────────────────────────────────────────────
ROLES = ("patient", "doctor", "admin")
DEFAULT_ROLE = "patient"
APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled", "completed")
SEVERITIES = ("low", "medium", "high")

# ── Field limits ─────────────────────────────────────────────────────
MAX_NAME_LENGTH = 100
MIN_PASSWORD_LENGTH = 8
MAX_REASON_LENGTH = 500
MIN_SYMPTOMS_LENGTH = 10
MAX_SYMPTOMS_LENGTH = 2000

# Largest primary key the database can hold (signed 64-bit).
MAX_RECORD_ID = 2**63 - 1

# The doctor id format check on appointment creation is relaxed unless
# explicitly switched on.
VALIDATE_DOCTOR_ID = env_flag("VALIDATE_DOCTOR_ID", False)

# ── LLM ──────────────────────────────────────────────────────────────
MODEL_NAME = os.getenv("MODEL_NAME", "gpt-4.1-mini")

# ── Database ─────────────────────────────────────────────────────────
DEFAULT_DB_URI = "sqlite:///healthportal.db"

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24
MAX_RESULTS_RETURN = 1000


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
