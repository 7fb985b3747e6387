"""
JWT authentication helpers and middleware for the Flask API.
"""

import secrets
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import request
from werkzeug.security import check_password_hash, generate_password_hash

from healthportal.config import SECRET_KEY, TOKEN_EXPIRY_HOURS
from healthportal.errors import Unauthenticated
from healthportal.models import Principal

# In-memory session store (use Redis in production)
# Structure: {token: {"principal": Principal, "created_at": datetime, "last_activity": datetime}}
sessions: Dict[str, Dict[str, Any]] = {}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def check_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def generate_token(principal: Principal) -> str:
    """Generate a JWT token for an authenticated user."""
    now = _now()
    payload = {
        "user_id": principal.user_id,
        "role": principal.role,
        "name": principal.name,
        "iat": now,
        "exp": now + timedelta(hours=TOKEN_EXPIRY_HOURS),
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def open_session(principal: Principal) -> str:
    """Issue a token for *principal* and register its session."""
    token = generate_token(principal)
    now = _now()
    sessions[token] = {
        "principal": principal,
        "created_at": now,
        "last_activity": now,
    }
    return token


def refresh_user_sessions(principal: Principal) -> None:
    """Replace the principal held by every session of that user (e.g. after a role change)."""
    for data in list(sessions.values()):
        if data["principal"].user_id == principal.user_id:
            data["principal"] = principal


def revoke_user_sessions(user_id: int) -> int:
    """Drop every session belonging to *user_id*; return how many were removed."""
    doomed = [tok for tok, data in list(sessions.items()) if data["principal"].user_id == user_id]
    for tok in doomed:
        sessions.pop(tok, None)
    return len(doomed)


def token_required(f):
    """Decorator that attaches ``request.principal`` from a Bearer token."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None

        # Check Authorization header (Bearer token)
        if "Authorization" in request.headers:
            auth_header = request.headers["Authorization"]
            try:
                token = auth_header.split(" ")[1]
            except IndexError:
                raise Unauthenticated("Invalid authorization header format") from None

        # Fallback: token in query params
        if not token:
            token = request.args.get("token")

        if not token:
            raise Unauthenticated("Not authorized, no token")

        payload = verify_token(token)
        if not payload:
            raise Unauthenticated("Invalid or expired token")

        session_data = sessions.get(token)
        if session_data is None:
            raise Unauthenticated("Session not found. Please login again.")

        session_data["last_activity"] = _now()

        # Attach session data to the request context
        request.principal = session_data["principal"]
        request.session_data = session_data
        request.token = token

        return f(*args, **kwargs)

    return decorated


def cleanup_expired_sessions() -> int:
    """Remove sessions that have been inactive beyond TOKEN_EXPIRY_HOURS."""
    now = _now()
    expired = [
        tok for tok, data in list(sessions.items())
        if (now - data["last_activity"]).total_seconds() > TOKEN_EXPIRY_HOURS * 3600
    ]
    for tok in expired:
        sessions.pop(tok, None)
    if expired:
        print(f"[cleanup] Removed {len(expired)} expired sessions")
    return len(expired)
