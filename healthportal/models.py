"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Principal:
    """The authenticated actor attached to a request."""
    user_id: int
    name: str
    email: str
    role: str                  # "patient", "doctor", or "admin"

    @classmethod
    def from_row(cls, row) -> "Principal":
        return cls(
            user_id=int(row["id"]),
            name=str(row["name"]),
            email=str(row["email"]),
            role=str(row["role"]),
        )


@dataclass
class FieldError:
    """One failed check on one request field."""
    field: str
    message: str
    value: Any = None
    location: str = "body"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "message": self.message,
            "value": self.value,
            "location": self.location,
        }


@dataclass
class SymptomVerdict:
    """Structured result of an AI symptom analysis."""
    severity: str
    possible_conditions: list = field(default_factory=list)
    recommendations: list = field(default_factory=list)
    confidence: float = 0.0
    summary: str = ""
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "possibleConditions": list(self.possible_conditions),
            "recommendations": list(self.recommendations),
            "confidence": self.confidence,
            "summary": self.summary,
        }
