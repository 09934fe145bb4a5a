#=======================================================================================
# app/reminders/service.py
# Entry point for batch reminders: validate, register a job, spawn the loop, return.
#=======================================================================================
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, Optional, Set

from app.feature_flags import METHOD_FLAGS, FeatureFlagStore
from app.reminders.dispatch import ReminderDispatcher, eligible_for
from app.reminders.job_store import DEFAULT_SWEEP_INTERVAL, DEFAULT_TTL_SECONDS, JobStore
from app.reminders.models import METHODS, Job
from app.utils.formatters import current_month, is_month

logger = logging.getLogger("uvicorn.error")


class ReminderRejected(Exception):
    """Request refused before any job was created."""

    def __init__(self, status_code: int, body: Dict[str, Any]):
        super().__init__(body.get("error") or "rejected")
        self.status_code = status_code
        self.body = body


class ReminderService:
    def __init__(
        self,
        dispatcher: ReminderDispatcher,
        flags: FeatureFlagStore,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ):
        self.dispatcher = dispatcher
        self.flags = flags
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = sweep_interval
        self._tasks: Set[asyncio.Task] = set()

    @property
    def store(self) -> JobStore:
        return self.dispatcher.store

    # ---- Lifecycle (store + sweeper start and stop together) ----

    def start(self) -> None:
        self.store.start_sweeper(self.sweep_interval, self.ttl_seconds)

    async def stop(self, timeout: float = 5.0) -> None:
        await self.store.stop_sweeper()
        if self._tasks:
            logger.info("[JOB] waiting for %d running job(s)", len(self._tasks))
            _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    # ---- Submit ----

    async def _check_method_enabled(self, method: str, user_id: str) -> None:
        key = METHOD_FLAGS[method]
        if await self.flags.is_enabled(key):
            return
        message = await self.flags.disabled_message(key)
        logger.warning("[FLAGS] %s reminders blocked - feature disabled for user: %s", method.upper(), user_id)
        raise ReminderRejected(403, {
            "error": "Feature unavailable",
            "message": message or f"{method.upper()} reminders are temporarily unavailable.",
            "method": method,
            "enabled": False,
            "suggestion": "Try using email reminders instead" if method == "sms" else None,
        })

    async def submit(self, user_id: str, tenant_ids: Any, method: Any, month: Optional[str] = None) -> Dict[str, Any]:
        if not isinstance(tenant_ids, list) or not tenant_ids:
            raise ReminderRejected(400, {"error": "Tenant IDs are required (array)"})
        if method not in METHODS:
            raise ReminderRejected(400, {"error": 'Method must be either "sms" or "email"'})
        if month and not is_month(month):
            raise ReminderRejected(400, {"error": "Month must be in YYYY-MM format"})

        await self._check_method_enabled(method, user_id)

        tenant_ids = [str(t) for t in tenant_ids]
        target_month = month or current_month()

        # pre-resolution estimate; the loop re-resolves and corrects total
        resolved = await self.dispatcher.repository.find_for_owner(tenant_ids, user_id)
        eligible = eligible_for(method, resolved)
        if method == "email" and resolved and not eligible:
            raise ReminderRejected(400, {"error": "None of the selected tenants have email addresses"})

        job_id = uuid.uuid4().hex
        await self.store.create(job_id, len(eligible), method=method, user_id=user_id)

        # Fire and forget
        task = asyncio.create_task(
            self.dispatcher.run(job_id, user_id, tenant_ids, method, target_month),
            name=f"reminder-job-{job_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info("[JOB][REGISTER] Job %s created for %d tenants (method: %s)", job_id, len(eligible), method)
        return {
            "message": "Reminders are being sent in the background",
            "jobId": job_id,
            "total": len(eligible),
            "method": method,
        }

    # ---- Query ----

    async def get_job(self, job_id: str, user_id: Optional[str] = None) -> Optional[Job]:
        """Snapshot of a job, or None if unknown, swept, or owned by someone else."""
        job = await self.store.get(job_id)
        if job is None:
            return None
        if user_id is not None and job.user_id != user_id:
            return None
        return job

    async def status(self, job_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        job = await self.get_job(job_id, user_id)
        return job.summary() if job else None

    async def details(self, job_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        job = await self.get_job(job_id, user_id)
        return job.to_dict() if job else None

    async def available_methods(self) -> Dict[str, Any]:
        methods: Dict[str, Any] = {}
        for method in METHODS:
            key = METHOD_FLAGS[method]
            enabled = await self.flags.is_enabled(key)
            methods[method] = {
                "enabled": enabled,
                "available": enabled,
                "message": None if enabled else await self.flags.disabled_message(key),
            }
        sms_on, email_on = methods["sms"]["enabled"], methods["email"]["enabled"]
        return {
            "methods": methods,
            "hasAnyMethod": sms_on or email_on,
            "recommendedMethod": "sms" if sms_on else ("email" if email_on else None),
        }
