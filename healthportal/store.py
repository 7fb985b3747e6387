"""
SQL access for users, appointments and symptom analyses.

Every function takes the SQLAlchemy engine explicitly; rows come back as
mappings and are turned into API payloads by the ``serialize_*`` helpers.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from healthportal.config import DEFAULT_ROLE, MAX_RECORD_ID, MAX_RESULTS_RETURN
from healthportal.database import appointments, symptom_analyses, users
from healthportal.errors import Conflict
from healthportal.models import Principal, SymptomVerdict

USER_UPDATABLE_FIELDS = ("name", "email", "role", "phone", "specialization")


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def storable_id(value: int) -> bool:
    """True when *value* fits the integer primary-key range."""
    return 0 < value <= MAX_RECORD_ID


def _iso(value) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


# ── Users ────────────────────────────────────────────────────────────

def serialize_user(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "role": row["role"],
        "phone": row["phone"],
        "specialization": row["specialization"],
        "createdAt": _iso(row["created_at"]),
    }


def create_user(engine, name: str, email: str, password_hash: str,
                role: str = DEFAULT_ROLE, phone: Optional[str] = None,
                specialization: Optional[str] = None) -> Mapping[str, Any]:
    if get_user_by_email(engine, email) is not None:
        raise Conflict("User already exists")
    stmt = insert(users).values(
        name=name,
        email=email,
        password_hash=password_hash,
        role=role,
        phone=phone,
        specialization=specialization,
        created_at=utcnow(),
    )
    try:
        with engine.begin() as conn:
            user_id = conn.execute(stmt).inserted_primary_key[0]
    except IntegrityError as e:
        raise Conflict("User already exists") from e
    return get_user(engine, user_id)


def get_user(engine, user_id: int) -> Optional[Mapping[str, Any]]:
    if not storable_id(user_id):
        return None
    with engine.connect() as conn:
        return conn.execute(
            select(users).where(users.c.id == user_id)
        ).mappings().first()


def get_user_by_email(engine, email: str) -> Optional[Mapping[str, Any]]:
    with engine.connect() as conn:
        return conn.execute(
            select(users).where(users.c.email == email)
        ).mappings().first()


def list_users(engine, role: Optional[str] = None,
               limit: int = MAX_RESULTS_RETURN) -> List[Mapping[str, Any]]:
    stmt = select(users).order_by(users.c.created_at.desc(), users.c.id.desc()).limit(limit)
    if role:
        stmt = stmt.where(users.c.role == role)
    with engine.connect() as conn:
        return list(conn.execute(stmt).mappings().all())


def update_user(engine, user_id: int, changes: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Apply the updatable subset of *changes*; return the new row or None if missing."""
    values = {k: changes[k] for k in USER_UPDATABLE_FIELDS if k in changes}
    if get_user(engine, user_id) is None:
        return None
    if values.get("email"):
        existing = get_user_by_email(engine, values["email"])
        if existing is not None and existing["id"] != user_id:
            raise Conflict("Email already in use")
    if values:
        try:
            with engine.begin() as conn:
                conn.execute(update(users).where(users.c.id == user_id).values(**values))
        except IntegrityError as e:
            raise Conflict("Email already in use") from e
    return get_user(engine, user_id)


def delete_user(engine, user_id: int) -> bool:
    """Delete a user together with their appointments and analyses."""
    if not storable_id(user_id):
        return False
    with engine.begin() as conn:
        conn.execute(delete(appointments).where(
            (appointments.c.patient_id == user_id) | (appointments.c.doctor_id == user_id)
        ))
        conn.execute(delete(symptom_analyses).where(symptom_analyses.c.user_id == user_id))
        result = conn.execute(delete(users).where(users.c.id == user_id))
    return result.rowcount > 0


# ── Appointments ─────────────────────────────────────────────────────

_patient = users.alias("patient")
_doctor = users.alias("doctor")

_APPOINTMENT_SELECT = select(
    appointments,
    _patient.c.name.label("patient_name"),
    _doctor.c.name.label("doctor_name"),
    _doctor.c.specialization.label("doctor_specialization"),
).select_from(
    appointments
    .join(_patient, appointments.c.patient_id == _patient.c.id)
    .join(_doctor, appointments.c.doctor_id == _doctor.c.id)
)


def serialize_appointment(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "patient": {"id": row["patient_id"], "name": row["patient_name"]},
        "doctor": {
            "id": row["doctor_id"],
            "name": row["doctor_name"],
            "specialization": row["doctor_specialization"],
        },
        "appointmentDate": row["appointment_date"],
        "appointmentTime": row["appointment_time"],
        "reason": row["reason"],
        "symptoms": row["symptoms"],
        "status": row["status"],
        "createdAt": _iso(row["created_at"]),
    }


def create_appointment(engine, patient_id: int, doctor_id: int, appointment_date: str,
                       appointment_time: str, reason: Optional[str] = None,
                       symptoms: Optional[str] = None) -> Mapping[str, Any]:
    stmt = insert(appointments).values(
        patient_id=patient_id,
        doctor_id=doctor_id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        reason=reason,
        symptoms=symptoms,
        status="pending",
        created_at=utcnow(),
    )
    with engine.begin() as conn:
        appointment_id = conn.execute(stmt).inserted_primary_key[0]
    return get_appointment(engine, appointment_id)


def get_appointment(engine, appointment_id: int) -> Optional[Mapping[str, Any]]:
    if not storable_id(appointment_id):
        return None
    with engine.connect() as conn:
        return conn.execute(
            _APPOINTMENT_SELECT.where(appointments.c.id == appointment_id)
        ).mappings().first()


def appointment_scope(stmt, principal: Principal):
    """Restrict an appointments query to what *principal* may see."""
    if principal.role == "patient":
        return stmt.where(appointments.c.patient_id == principal.user_id)
    if principal.role == "doctor":
        return stmt.where(appointments.c.doctor_id == principal.user_id)
    return stmt


def list_appointments(engine, principal: Principal, status: Optional[str] = None,
                      limit: int = MAX_RESULTS_RETURN) -> List[Mapping[str, Any]]:
    stmt = appointment_scope(_APPOINTMENT_SELECT, principal)
    if status:
        stmt = stmt.where(appointments.c.status == status)
    stmt = stmt.order_by(
        appointments.c.appointment_date.desc(),
        appointments.c.appointment_time.desc(),
        appointments.c.id.desc(),
    ).limit(limit)
    with engine.connect() as conn:
        return list(conn.execute(stmt).mappings().all())


def set_appointment_status(engine, appointment_id: int, status: str) -> Optional[Mapping[str, Any]]:
    with engine.begin() as conn:
        conn.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(status=status)
        )
    return get_appointment(engine, appointment_id)


# ── Symptom analyses ─────────────────────────────────────────────────

def serialize_analysis(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "user": row["user_id"],
        "userInput": row["user_input"],
        "aiResponse": {
            "severity": row["severity"],
            "possibleConditions": json.loads(row["possible_conditions"] or "[]"),
            "recommendations": json.loads(row["recommendations"] or "[]"),
            "confidence": row["confidence"],
            "summary": row["summary"],
        },
        "createdAt": _iso(row["created_at"]),
    }


def create_analysis(engine, user_id: int, user_input: str,
                    verdict: SymptomVerdict) -> Mapping[str, Any]:
    stmt = insert(symptom_analyses).values(
        user_id=user_id,
        user_input=user_input,
        severity=verdict.severity,
        possible_conditions=json.dumps(list(verdict.possible_conditions)),
        recommendations=json.dumps(list(verdict.recommendations)),
        confidence=float(verdict.confidence),
        summary=verdict.summary,
        created_at=utcnow(),
    )
    with engine.begin() as conn:
        analysis_id = conn.execute(stmt).inserted_primary_key[0]
        return conn.execute(
            select(symptom_analyses).where(symptom_analyses.c.id == analysis_id)
        ).mappings().first()


def analysis_scope(stmt, principal: Principal):
    """Patients see their own analyses; doctors and admins see all."""
    if principal.role == "patient":
        return stmt.where(symptom_analyses.c.user_id == principal.user_id)
    return stmt


def list_analyses(engine, principal: Principal,
                  limit: int = MAX_RESULTS_RETURN) -> List[Mapping[str, Any]]:
    stmt = analysis_scope(select(symptom_analyses), principal).order_by(
        symptom_analyses.c.created_at.desc(), symptom_analyses.c.id.desc()
    ).limit(limit)
    with engine.connect() as conn:
        return list(conn.execute(stmt).mappings().all())
