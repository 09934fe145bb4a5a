# app/feature_flags.py
# Runtime on/off switches (sms_reminders, email_reminders, ...) kept in the DB.
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import get_sessionmaker
from app.models import EventLog, FeatureFlag
from app.models.tenants import utcnow

logger = logging.getLogger("uvicorn.error")

DEFAULT_DISABLED_MESSAGE = "This feature is temporarily unavailable."

# key -> (name, description, disabled message)
DEFAULT_FLAGS: Dict[str, tuple[str, str, str]] = {
    "sms_reminders": (
        "SMS Reminders",
        "Send rent reminders to tenants by SMS (Africa's Talking).",
        "SMS reminders are temporarily unavailable. Please use email reminders instead.",
    ),
    "email_reminders": (
        "Email Reminders",
        "Send rent reminders to tenants by email.",
        "Email reminders are temporarily unavailable.",
    ),
    "csv_import": (
        "CSV Import",
        "Bulk import tenants from a CSV file.",
        "CSV import is temporarily unavailable.",
    ),
    "multi_property": (
        "Multiple Properties",
        "Manage more than one property per landlord.",
        DEFAULT_DISABLED_MESSAGE,
    ),
}

METHOD_FLAGS = {"sms": "sms_reminders", "email": "email_reminders"}


@dataclass(frozen=True)
class FlagState:
    key: str
    enabled: bool
    name: str
    description: str
    disabled_message: str
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "enabled": self.enabled,
            "name": self.name,
            "description": self.description,
            "disabledMessage": self.disabled_message,
            "lastModifiedBy": self.last_modified_by,
            "lastModifiedAt": self.last_modified_at,
        }


def _state(row: FeatureFlag) -> FlagState:
    return FlagState(
        key=row.key,
        enabled=bool(row.enabled),
        name=row.name,
        description=row.description or "",
        disabled_message=row.disabled_message or DEFAULT_DISABLED_MESSAGE,
        last_modified_by=row.last_modified_by,
        last_modified_at=row.last_modified_at.isoformat() if row.last_modified_at else None,
    )


class FeatureFlagStore:
    def __init__(self, sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._sessionmaker = sessionmaker

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        return self._sessionmaker or get_sessionmaker()

    async def get(self, key: str) -> Optional[FlagState]:
        async with self.sessionmaker() as session:
            row = await session.get(FeatureFlag, key)
            return _state(row) if row is not None else None

    async def is_enabled(self, key: str) -> bool:
        # a flag that was never created counts as enabled
        flag = await self.get(key)
        return True if flag is None else flag.enabled

    async def disabled_message(self, key: str) -> str:
        flag = await self.get(key)
        return flag.disabled_message if flag is not None else DEFAULT_DISABLED_MESSAGE

    async def all(self) -> Dict[str, FlagState]:
        async with self.sessionmaker() as session:
            rows = (await session.execute(select(FeatureFlag).order_by(FeatureFlag.key))).scalars().all()
        return {r.key: _state(r) for r in rows}

    async def set_enabled(self, key: str, enabled: bool, admin: str) -> FlagState:
        async with self.sessionmaker() as session:
            row = await session.get(FeatureFlag, key)
            if row is None:
                raise KeyError(f"Feature flag '{key}' not found")
            previous = bool(row.enabled)
            row.enabled = bool(enabled)
            row.last_modified_by = admin
            row.last_modified_at = utcnow()
            session.add(EventLog(
                user_id=admin,
                event_type="FEATURE_FLAG_TOGGLED",
                meta={"key": key, "from": previous, "to": bool(enabled)},
            ))
            await session.commit()
            state = _state(row)
        logger.info("[FLAGS] %s %s by %s", key, "enabled" if enabled else "disabled", admin)
        return state

    async def seed_defaults(self) -> int:
        """Insert any missing default flags (enabled). Existing rows are untouched."""
        created = 0
        async with self.sessionmaker() as session:
            for key, (name, description, message) in DEFAULT_FLAGS.items():
                if await session.get(FeatureFlag, key) is None:
                    session.add(FeatureFlag(key=key, enabled=True, name=name,
                                            description=description, disabled_message=message))
                    created += 1
            await session.commit()
        if created:
            logger.info("[FLAGS] seeded %d default feature flag(s)", created)
        return created
