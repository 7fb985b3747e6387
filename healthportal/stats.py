"""
Dashboard statistics and health trends, computed with pandas.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy import select

from healthportal.database import appointments, symptom_analyses, users
from healthportal.models import Principal
from healthportal.store import analysis_scope, appointment_scope

TREND_DAYS = 30
OPEN_STATUSES = ("pending", "confirmed")


def _frame(engine, stmt) -> pd.DataFrame:
    with engine.connect() as conn:
        return pd.read_sql_query(stmt, conn)


def _appointment_days(values: pd.Series) -> pd.Series:
    """Parse stored ISO dates/datetimes to UTC midnights (NaT when unparsable)."""
    parsed = pd.to_datetime(values, errors="coerce", format="ISO8601", utc=True)
    return parsed.dt.normalize()


def _appointments_frame(engine, principal: Principal) -> pd.DataFrame:
    stmt = appointment_scope(
        select(
            appointments.c.id,
            appointments.c.patient_id,
            appointments.c.doctor_id,
            appointments.c.appointment_date,
            appointments.c.status,
        ),
        principal,
    )
    return _frame(engine, stmt)


def _analyses_frame(engine, principal: Principal) -> pd.DataFrame:
    stmt = analysis_scope(
        select(
            symptom_analyses.c.id,
            symptom_analyses.c.user_id,
            symptom_analyses.c.severity,
            symptom_analyses.c.confidence,
            symptom_analyses.c.created_at,
        ),
        principal,
    )
    return _frame(engine, stmt)


def _upcoming(df: pd.DataFrame, today: date) -> int:
    if df.empty:
        return 0
    days = _appointment_days(df["appointment_date"])
    mask = (days >= pd.Timestamp(today.isoformat(), tz="UTC")) & df["status"].isin(OPEN_STATUSES)
    return int(mask.sum())


def dashboard_stats(engine, principal: Principal, today: Optional[date] = None) -> Dict[str, Any]:
    """Role-specific counters for the dashboard cards."""
    today = today or date.today()
    appts = _appointments_frame(engine, principal)

    if principal.role == "patient":
        analyses = _analyses_frame(engine, principal)
        return {
            "myAppointments": int(len(appts)),
            "upcomingAppointments": _upcoming(appts, today),
            "myAnalyses": int(len(analyses)),
        }

    if principal.role == "doctor":
        todays = 0
        if not appts.empty:
            days = _appointment_days(appts["appointment_date"])
            todays = int((days == pd.Timestamp(today.isoformat(), tz="UTC")).sum())
        return {
            "myAppointments": int(len(appts)),
            "upcomingAppointments": _upcoming(appts, today),
            "todayAppointments": todays,
            "totalPatients": int(appts["patient_id"].nunique()) if not appts.empty else 0,
        }

    people = _frame(engine, select(users.c.id, users.c.role))
    roles = people["role"].value_counts()
    analyses = _analyses_frame(engine, principal)
    return {
        "totalUsers": int(len(people)),
        "totalPatients": int(roles.get("patient", 0)),
        "totalDoctors": int(roles.get("doctor", 0)),
        "totalAppointments": int(len(appts)),
        "pendingAppointments": int((appts["status"] == "pending").sum()) if not appts.empty else 0,
        "totalAnalyses": int(len(analyses)),
    }


def health_trends(engine, principal: Principal, today: Optional[date] = None,
                  days: int = TREND_DAYS) -> List[Dict[str, Any]]:
    """Per-day aggregates of symptom analyses over the last *days* days."""
    today = today or date.today()
    df = _analyses_frame(engine, principal)
    if df.empty:
        return []

    df["day"] = pd.to_datetime(df["created_at"], errors="coerce").dt.normalize()
    since = pd.Timestamp((today - timedelta(days=days - 1)).isoformat())
    df = df[df["day"] >= since].copy()
    if df.empty:
        return []

    df["high"] = (df["severity"] == "high").astype(int)
    grouped = (
        df.groupby("day")
        .agg(analyses=("id", "count"), confidence=("confidence", "mean"), high=("high", "sum"))
        .sort_index()
    )

    return [
        {
            "date": day.strftime("%Y-%m-%d"),
            "analyses": int(row["analyses"]),
            "confidence": round(float(row["confidence"]), 1),
            "highSeverity": int(row["high"]),
        }
        for day, row in grouped.iterrows()
    ]
