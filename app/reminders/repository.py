# app/reminders/repository.py
# Tenant/landlord lookups the dispatch loop needs, on top of the async ORM.
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import get_sessionmaker
from app.models import Tenant, User
from app.reminders.models import Landlord, Recipient

logger = logging.getLogger("uvicorn.error")


def _to_recipient(t: Tenant) -> Recipient:
    return Recipient(
        id=t.id,
        name=t.name,
        phone=t.phone,
        email=(t.email or None),
        unit_number=t.unit_number,
        rent_amount=t.rent_amount,
        due_date=t.due_date,
        property_name=(t.property.name if t.property is not None else None),
    )


class SqlTenantRepository:
    def __init__(self, sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._sessionmaker = sessionmaker

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        return self._sessionmaker or get_sessionmaker()

    async def get_user(self, user_id: str) -> Optional[Landlord]:
        async with self.sessionmaker() as session:
            user = await session.get(User, user_id)
            if user is None:
                return None
            return Landlord(id=user.id, name=user.name, phone=user.phone, email=user.email)

    async def find_for_owner(self, tenant_ids: Sequence[str], owner_id: str) -> List[Recipient]:
        """
        Tenants among `tenant_ids` owned by `owner_id` and not soft-deleted,
        returned in the order of `tenant_ids` (duplicates collapsed).
        """
        ids = [str(t) for t in tenant_ids]
        if not ids:
            return []
        async with self.sessionmaker() as session:
            stmt = (
                select(Tenant)
                .where(Tenant.id.in_(ids), Tenant.user_id == owner_id, Tenant.deleted_at.is_(None))
            )
            rows = (await session.execute(stmt)).scalars().unique().all()
        by_id = {t.id: t for t in rows}
        out: List[Recipient] = []
        seen = set()
        for tid in ids:
            if tid in by_id and tid not in seen:
                seen.add(tid)
                out.append(_to_recipient(by_id[tid]))
        return out

    async def mark_reminded(self, tenant_id: str, when: datetime) -> None:
        async with self.sessionmaker() as session:
            await session.execute(
                update(Tenant).where(Tenant.id == tenant_id).values(last_reminder_sent_at=when.replace(tzinfo=None))
            )
            await session.commit()
