# app/models/feature_flag.py
from __future__ import annotations
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.db import Base
from app.models.tenants import utcnow


class FeatureFlag(Base):
    __tablename__ = "feature_flags"

    key: Mapped[str] = mapped_column(String(32), primary_key=True)  # e.g. "sms_reminders"
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    name: Mapped[str] = mapped_column(String(120))
    description: Mapped[str] = mapped_column(Text, default="")
    disabled_message: Mapped[str] = mapped_column(Text, default="This feature is temporarily unavailable.")
    last_modified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
