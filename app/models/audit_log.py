# app/models/audit_log.py
# Durable delivery history: one ReminderLog row per attempted reminder,
# one EventLog row per notable landlord/admin action.
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import String, Integer, DateTime, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column
from app.db import Base
from app.models.tenants import utcnow

EVENT_TYPES = (
    "USER_LOGGED_IN",
    "PROPERTY_ADDED",
    "TENANT_ADDED",
    "TENANT_IMPORTED",
    "RENT_STATUS_UPDATED",
    "REMINDERS_SENT",
    "MONTHLY_REMINDER_SENT",
    "DASHBOARD_VISITED",
    "FEEDBACK_SUBMITTED",
    "FEATURE_FLAG_TOGGLED",
)


class ReminderLog(Base):
    __tablename__ = "reminder_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    type: Mapped[str] = mapped_column(String(8))                     # sms | email
    status: Mapped[str] = mapped_column(String(8), index=True)       # sent | failed
    cost: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)


class EventLog(Base):
    __tablename__ = "event_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    event_type: Mapped[str] = mapped_column(String(32), index=True)
    # "metadata" is reserved on declarative classes
    meta: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
