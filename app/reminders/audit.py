# app/reminders/audit.py
# Best-effort audit trail. Nothing in here may raise into the caller.
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db import get_sessionmaker
from app.models import EventLog, ReminderLog, Tenant

logger = logging.getLogger("uvicorn.error")


class AuditLog:
    def __init__(self, sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None):
        self._sessionmaker = sessionmaker

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        return self._sessionmaker or get_sessionmaker()

    async def record_reminder(
        self,
        *,
        user_id: str,
        tenant_id: str,
        method: str,
        success: bool,
        cost: int = 0,
        error: Optional[str] = None,
    ) -> None:
        try:
            async with self.sessionmaker() as session:
                session.add(ReminderLog(
                    user_id=user_id,
                    tenant_id=tenant_id,
                    type=method,
                    status="sent" if success else "failed",
                    cost=cost or 0,
                    error_message=error,
                ))
                await session.commit()
        except Exception as e:
            logger.error("[AUDIT] reminder log write failed for tenant %s: %s", tenant_id, e)

    async def log_event(self, user_id: str, event_type: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        try:
            async with self.sessionmaker() as session:
                session.add(EventLog(user_id=user_id, event_type=event_type, meta=dict(metadata or {})))
                await session.commit()
        except Exception as e:
            logger.error("[AUDIT] event log write failed (%s): %s", event_type, e)

    # ---- Read side (reminder history for the landlord) ----

    @staticmethod
    def _filters(user_id: str, tenant_id: str | None, start: datetime | None, end: datetime | None):
        conds = [ReminderLog.user_id == user_id]
        if tenant_id:
            conds.append(ReminderLog.tenant_id == tenant_id)
        if start:
            conds.append(ReminderLog.timestamp >= start)
        if end:
            conds.append(ReminderLog.timestamp <= end)
        return conds

    async def list_reminders(
        self,
        user_id: str,
        *,
        tenant_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> Dict[str, Any]:
        conds = self._filters(user_id, tenant_id, start, end)
        async with self.sessionmaker() as session:
            total = (await session.execute(select(func.count(ReminderLog.id)).where(*conds))).scalar_one()
            stmt = (
                select(ReminderLog, Tenant)
                .outerjoin(Tenant, Tenant.id == ReminderLog.tenant_id)
                .where(*conds)
                .order_by(ReminderLog.timestamp.desc(), ReminderLog.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            rows = (await session.execute(stmt)).all()

        logs = []
        for log, tenant in rows:
            logs.append({
                "id": log.id,
                "tenantId": log.tenant_id,
                "tenantName": tenant.name if tenant else None,
                "tenantUnit": tenant.unit_number if tenant else None,
                "type": log.type,
                "status": log.status,
                "cost": log.cost,
                "errorMessage": log.error_message,
                "timestamp": log.timestamp.isoformat() if log.timestamp else None,
            })
        return {
            "logs": logs,
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": -(-total // limit) if limit else 0,
            },
        }

    async def reminder_stats(self, user_id: str, *, start: datetime | None = None,
                             end: datetime | None = None) -> Dict[str, Any]:
        conds = self._filters(user_id, None, start, end)
        async with self.sessionmaker() as session:
            by_status = dict((await session.execute(
                select(ReminderLog.status, func.count(ReminderLog.id)).where(*conds).group_by(ReminderLog.status)
            )).all())
            total_cost = (await session.execute(
                select(func.coalesce(func.sum(ReminderLog.cost), 0)).where(*conds, ReminderLog.status == "sent")
            )).scalar_one()
            by_type = dict((await session.execute(
                select(ReminderLog.type, func.count(ReminderLog.id)).where(*conds).group_by(ReminderLog.type)
            )).all())
        return {
            "totalSent": by_status.get("sent", 0),
            "totalFailed": by_status.get("failed", 0),
            "totalCost": int(total_cost or 0),
            "byType": {"sms": by_type.get("sms", 0), "email": by_type.get("email", 0)},
        }
