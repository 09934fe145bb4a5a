#=======================================================================================
# app/reminders/dispatch.py
# Background reminder loop: one job, one landlord, tenants processed strictly in order.
#
# Contract with pollers: the only output of run() is mutation of the job record.
# One tenant failing never stops the batch; run() never leaves a job "processing".
#=======================================================================================
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Sequence

from app.messaging.outcome import RenderedMessage, SendOutcome
from app.messaging.templates import email_subject, render_email, render_sms
from app.reminders.job_store import JobStore
from app.reminders.models import DispatchResult, Failed, JobDetail, Landlord, Recipient, Sent
from app.utils.formatters import current_month

logger = logging.getLogger("uvicorn.error")


class Channel(Protocol):
    async def send(self, recipient: Recipient, message: RenderedMessage) -> SendOutcome: ...


class TenantRepository(Protocol):
    async def get_user(self, user_id: str) -> Optional[Landlord]: ...
    async def find_for_owner(self, tenant_ids: Sequence[str], owner_id: str) -> list[Recipient]: ...
    async def mark_reminded(self, tenant_id: str, when) -> None: ...


class AuditSink(Protocol):
    async def record_reminder(self, *, user_id: str, tenant_id: str, method: str,
                              success: bool, cost: int = 0, error: Optional[str] = None) -> None: ...
    async def log_event(self, user_id: str, event_type: str, metadata: Optional[Dict[str, Any]] = None) -> None: ...


def eligible_for(method: str, recipients: Sequence[Recipient]) -> list[Recipient]:
    if method == "email":
        return [r for r in recipients if (r.email or "").strip()]
    return list(recipients)


def render_message(method: str, recipient: Recipient, landlord: Landlord, month: str) -> RenderedMessage:
    if method == "sms":
        return RenderedMessage(body=render_sms(
            tenant_name=recipient.name,
            month=month,
            rent_amount=recipient.rent_amount,
            due_date=recipient.due_date,
            landlord_name=landlord.name,
        ))
    return RenderedMessage(
        subject=email_subject(recipient.property_name),
        body=render_email(
            tenant_name=recipient.name,
            month=month,
            rent_amount=recipient.rent_amount,
            due_date=recipient.due_date,
            unit_number=recipient.unit_number,
            landlord_name=landlord.name,
            landlord_phone=landlord.phone,
        ),
    )


class ReminderDispatcher:
    def __init__(
        self,
        store: JobStore,
        repository: TenantRepository,
        channels: Dict[str, Channel],
        audit: AuditSink,
        *,
        send_delay: float = 0.1,
        send_timeout: Optional[float] = 30.0,
    ):
        self.store = store
        self.repository = repository
        self.channels = channels
        self.audit = audit
        self.send_delay = send_delay
        self.send_timeout = send_timeout

    async def _send(self, method: str, recipient: Recipient, landlord: Landlord, month: str) -> DispatchResult:
        """Render and send to one tenant; every failure comes back as Failed."""
        try:
            message = render_message(method, recipient, landlord, month)
            channel = self.channels[method]
            if self.send_timeout:
                outcome = await asyncio.wait_for(channel.send(recipient, message), timeout=self.send_timeout)
            else:
                outcome = await channel.send(recipient, message)
        except asyncio.TimeoutError:
            return Failed(f"{method.upper()} send timed out after {self.send_timeout:g}s")
        except Exception as e:
            logger.error("[JOB] send to tenant %s raised: %s", recipient.id, e)
            return Failed(str(e) or e.__class__.__name__)
        if outcome.success:
            return Sent(cost=outcome.cost or 0)
        return Failed(outcome.error or "send failed")

    async def _side_effects(self, job_id: str, user_id: str, method: str,
                            recipient: Recipient, result: DispatchResult) -> None:
        try:
            await self.audit.record_reminder(
                user_id=user_id,
                tenant_id=recipient.id,
                method=method,
                success=isinstance(result, Sent),
                cost=result.cost if isinstance(result, Sent) else 0,
                error=result.reason if isinstance(result, Failed) else None,
            )
        except Exception as e:
            logger.error("[JOB] Job %s: audit write failed for tenant %s: %s", job_id, recipient.id, e)

        if isinstance(result, Sent):
            try:
                await self.repository.mark_reminded(recipient.id, self.store.now())
            except Exception as e:
                logger.error("[JOB] Job %s: could not stamp last reminder on tenant %s: %s", job_id, recipient.id, e)

    async def run(
        self,
        job_id: str,
        user_id: str,
        tenant_ids: Sequence[str],
        method: str,
        month: Optional[str] = None,
    ) -> None:
        month = month or current_month()
        logger.info("[JOB][RUN] Job %s starting (%d tenant ids, method=%s, month=%s)",
                    job_id, len(tenant_ids), method, month)
        try:
            landlord = await self.repository.get_user(user_id)
            if landlord is None:
                await self.store.finish(job_id, "failed", error="User not found")
                logger.warning("[JOB][ERROR] Job %s: user %s not found", job_id, user_id)
                return

            recipients = eligible_for(method, await self.repository.find_for_owner(tenant_ids, user_id))
            if not recipients:
                await self.store.finish(job_id, "failed", error="No valid tenants found")
                logger.warning("[JOB][ERROR] Job %s: no valid tenants", job_id)
                return

            await self.store.update(job_id, total=len(recipients))

            for i, recipient in enumerate(recipients):
                if i and self.send_delay:
                    await asyncio.sleep(self.send_delay)
                result = await self._send(method, recipient, landlord, month)
                await self._side_effects(job_id, user_id, method, recipient, result)
                await self.store.record_result(job_id, JobDetail.from_result(recipient, result))
                logger.info("[JOB] Job %s: processed %d/%d - %s (%s)", job_id, i + 1, len(recipients),
                            recipient.name, "sent" if isinstance(result, Sent) else "failed")

            job = await self.store.get(job_id)
            sent, failed, total_cost = (job.sent, job.failed, job.total_cost) if job else (0, 0, 0)
            try:
                await self.audit.log_event(user_id, "REMINDERS_SENT", {
                    "method": method,
                    "sent": sent,
                    "failed": failed,
                    "totalCost": total_cost,
                })
            except Exception as e:
                logger.error("[JOB] Job %s: summary event write failed: %s", job_id, e)

            await self.store.finish(job_id, "completed", total_cost=total_cost)
            logger.info("[JOB][COMPLETE] Job %s completed: %d sent, %d failed, total cost: %d",
                        job_id, sent, failed, total_cost)
        except asyncio.CancelledError:
            await self.store.finish(job_id, "failed", error="Job cancelled")
            raise
        except Exception as e:
            logger.exception("[JOB][ERROR] Job %s failed", job_id)
            await self.store.finish(job_id, "failed", error=str(e) or e.__class__.__name__)
