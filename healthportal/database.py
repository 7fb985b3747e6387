"""
Database engine initialisation and table definitions.
"""

import os
import sys

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    text,
)

from healthportal.config import DEFAULT_DB_URI

metadata = MetaData()

users = Table(
    "users", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False, default="patient"),
    Column("phone", String(40)),
    Column("specialization", String(100)),
    Column("created_at", DateTime, nullable=False),
)

appointments = Table(
    "appointments", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("patient_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("doctor_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("appointment_date", String(32), nullable=False),
    Column("appointment_time", String(20), nullable=False),
    Column("reason", Text),
    Column("symptoms", Text),
    Column("status", String(20), nullable=False, default="pending"),
    Column("created_at", DateTime, nullable=False),
)

symptom_analyses = Table(
    "symptom_analyses", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("user_input", Text, nullable=False),
    Column("severity", String(10), nullable=False),
    Column("possible_conditions", Text, nullable=False, default="[]"),
    Column("recommendations", Text, nullable=False, default="[]"),
    Column("confidence", Float, nullable=False, default=0.0),
    Column("summary", Text),
    Column("created_at", DateTime, nullable=False),
)


def init_engine(db_uri: str = None):
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or os.getenv("DB_URI") or DEFAULT_DB_URI
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def init_schema(engine) -> None:
    """Create any missing portal tables."""
    metadata.create_all(engine)
