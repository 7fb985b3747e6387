"""
Request-scoped errors raised by the gate, the validator and the handlers.

Each error carries the HTTP status it is rendered with; none of them is
retried or treated as fatal to the process.
"""

from typing import List, Optional

from healthportal.models import FieldError


class PortalError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message}


class Unauthenticated(PortalError):
    status_code = 401
    default_message = "Not authorized, no token"


class InvalidCredentials(PortalError):
    status_code = 401
    default_message = "Invalid credentials"


class Forbidden(PortalError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(PortalError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(PortalError):
    status_code = 400
    default_message = "Resource already exists"


class ValidationFailed(PortalError):
    """One or more field rules were not satisfied."""
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: List[FieldError]):
        super().__init__()
        self.errors = list(errors)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "errors": [e.to_dict() for e in self.errors],
        }
