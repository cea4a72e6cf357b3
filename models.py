"""SQLAlchemy models — agent call log and persisted dashboard settings."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class AgentRun(Base):
    """One call to an upstream agent, successful or not."""

    __tablename__ = "agent_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    agent_id = Column(String(64), nullable=False, index=True)
    task = Column(String(32), nullable=True)  # scan / publish
    success = Column(Boolean, default=False)
    status_code = Column(Integer, nullable=True)
    duration_seconds = Column(Float, default=0.0)
    error = Column(Text, nullable=True)
    started_at = Column(DateTime, default=_utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)


class DashboardSettingsRecord(Base):
    """Stored dashboard settings, one row per settings key."""

    __tablename__ = "dashboard_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(64), nullable=False, unique=True, index=True)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)
