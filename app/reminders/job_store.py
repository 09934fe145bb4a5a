#=======================================================================================
# app/reminders/job_store.py
# In-memory registry of reminder jobs.
#
# Jobs are progress trackers for pollers, not delivery history (that lives in
# reminder_logs). Everything here is lost on restart.
#=======================================================================================
from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from app.reminders.models import Job, JobDetail

logger = logging.getLogger("uvicorn.error")

DEFAULT_TTL_SECONDS = 60 * 60        # keep finished jobs 1 hour
DEFAULT_SWEEP_INTERVAL = 5 * 60      # sweep every 5 minutes


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStore:
    """
    create / update / get / sweep over a dict of Job records.

    get() and list() hand out deep copies; the only way to change a job is
    through update() or record_result(). Once a job is completed or failed
    its record is frozen.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._jobs: Dict[str, Job] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._sweeper: Optional[asyncio.Task] = None
        self._sweeper_stop: Optional[asyncio.Event] = None

    def now(self) -> datetime:
        return self._clock()

    async def create(self, job_id: str, total: int, **meta) -> Job:
        async with self._lock:
            existing = self._jobs.get(job_id)
            if existing is not None:
                logger.warning("[JOB][REGISTER] Job %s already exists; keeping original", job_id)
                return copy.deepcopy(existing)
            job = Job(id=job_id, total=int(total), started_at=self.now(), **meta)
            self._jobs[job_id] = job
            logger.debug("[JOB][REGISTER] Job %s added to store", job_id)
            return copy.deepcopy(job)

    async def update(self, job_id: str, **fields) -> None:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return
            for k, v in fields.items():
                if not hasattr(job, k):
                    raise AttributeError(f"Job has no field {k!r}")
                setattr(job, k, v)
            if job.is_terminal and job.completed_at is None:
                job.completed_at = self.now()

    async def finish(self, job_id: str, status: str, **fields) -> None:
        """Move a job to completed/failed and stamp completed_at once."""
        await self.update(job_id, status=status, completed_at=self.now(), **fields)

    async def record_result(self, job_id: str, detail: JobDetail) -> None:
        """Append one per-tenant outcome and bump the matching counter."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return
            if job.sent + job.failed >= job.total:
                # never let counters run past total
                job.total = job.sent + job.failed + 1
            job.details.append(detail)
            if detail.status == "sent":
                job.sent += 1
                job.total_cost += detail.cost or 0
            else:
                job.failed += 1

    async def get(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job is not None else None

    async def list(self) -> List[Job]:
        async with self._lock:
            jobs = [copy.deepcopy(j) for j in self._jobs.values()]
        jobs.sort(key=lambda j: j.started_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return jobs

    async def sweep(self, retention_seconds: float = DEFAULT_TTL_SECONDS) -> int:
        """Remove finished jobs whose completed_at is older than the retention window."""
        cutoff = self.now() - timedelta(seconds=retention_seconds)
        async with self._lock:
            to_del = [jid for jid, job in self._jobs.items()
                      if job.completed_at is not None and job.completed_at < cutoff]
            for jid in to_del:
                self._jobs.pop(jid, None)
        for jid in to_del:
            logger.info("[JOB][CLEANUP] Cleaned up old job: %s", jid)
        return len(to_del)

    def __len__(self) -> int:
        return len(self._jobs)

    # ---- Sweeper lifecycle ----

    async def _sweep_loop(self, stop: asyncio.Event, interval: float, retention: float) -> None:
        logger.info("[JOB][CLEANUP] sweeper started (every %ss, ttl %ss)", interval, retention)
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if stop.is_set():
                break
            try:
                await self.sweep(retention)
            except Exception:
                logger.exception("[JOB][CLEANUP] sweep failed")
        logger.info("[JOB][CLEANUP] sweeper stopped")

    def start_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL,
                      retention: float = DEFAULT_TTL_SECONDS) -> None:
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper_stop = asyncio.Event()
        self._sweeper = asyncio.create_task(self._sweep_loop(self._sweeper_stop, interval, retention))

    async def stop_sweeper(self) -> None:
        if self._sweeper_stop:
            self._sweeper_stop.set()
        if self._sweeper:
            try:
                await asyncio.wait_for(self._sweeper, timeout=5.0)
            except asyncio.TimeoutError:
                self._sweeper.cancel()
        self._sweeper = None
        self._sweeper_stop = None
