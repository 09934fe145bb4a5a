#=======================================================================================
# app/routes.py
# FastAPI routes for tenant rent reminders (landlord-facing, bearer auth).
#
# ✅ Sending is non-blocking: POST /api/reminders/send returns 202 + jobId,
#    then poll GET /api/reminders/jobs/{jobId} until "completed" or "failed".
#=======================================================================================

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from app.auth import get_current_user_id
from app.reminders.audit import AuditLog
from app.reminders.service import ReminderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reminders", tags=["Reminders"])


# ---------------------------
# Dependencies
# ---------------------------
def get_reminders(request: Request) -> ReminderService:
    return request.app.state.reminders


def get_audit(request: Request) -> AuditLog:
    return request.app.state.audit


# ---------------------------
# Helpers
# ---------------------------
async def _safe_json(req: Request) -> Dict[str, Any]:
    """Best-effort JSON body parsing with fallbacks."""
    try:
        body = await req.json()
        return body if isinstance(body, dict) else {}
    except Exception:
        try:
            raw = (await req.body()).decode("utf-8", "ignore")
            body = json.loads(raw) if raw.strip() else {}
            return body if isinstance(body, dict) else {}
        except Exception:
            return {}


def _parse_date(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be an ISO date (YYYY-MM-DD)")


# ----------------------------------------------------------------------
# Batch send (background job)
# ----------------------------------------------------------------------
@router.post("/send")
async def send_reminders(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    reminders: ReminderService = Depends(get_reminders),
):
    """
    Body:
      {
        "tenantIds": ["...", ...],
        "method": "sms" | "email",
        "month": "YYYY-MM" (optional, defaults to the current month)
      }

    Returns 202 { message, jobId, total, method } immediately.
    """
    payload = await _safe_json(request)
    logger.info("[JOB][SEND] request from user %s", user_id)
    result = await reminders.submit(
        user_id,
        payload.get("tenantIds", payload.get("tenant_ids")),
        payload.get("method"),
        payload.get("month"),
    )
    return JSONResponse(
        status_code=202,
        content=result,
        headers={"Location": f"/api/reminders/jobs/{result['jobId']}"},
    )


@router.get("/jobs/{job_id}")
async def job_status(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    reminders: ReminderService = Depends(get_reminders),
):
    """Poll background job counters and progress (no per-tenant detail)."""
    job = await reminders.status(job_id, user_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JSONResponse(content={"job": job})


@router.get("/jobs/{job_id}/details")
async def job_details(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    reminders: ReminderService = Depends(get_reminders),
):
    """Same as the status endpoint plus the ordered per-tenant results."""
    job = await reminders.details(job_id, user_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JSONResponse(content={"job": job})


# ----------------------------------------------------------------------
# Reminder history
# ----------------------------------------------------------------------
@router.get("/logs")
async def reminder_logs(
    tenantId: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    audit: AuditLog = Depends(get_audit),
):
    result = await audit.list_reminders(
        user_id,
        tenant_id=tenantId,
        start=_parse_date(startDate, "startDate"),
        end=_parse_date(endDate, "endDate"),
        page=page,
        limit=limit,
    )
    return JSONResponse(content=result)


@router.get("/stats")
async def reminder_stats(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    audit: AuditLog = Depends(get_audit),
):
    stats = await audit.reminder_stats(
        user_id,
        start=_parse_date(startDate, "startDate"),
        end=_parse_date(endDate, "endDate"),
    )
    return JSONResponse(content={"stats": stats})


@router.get("/methods")
async def available_methods(
    user_id: str = Depends(get_current_user_id),
    reminders: ReminderService = Depends(get_reminders),
):
    """Which delivery methods are currently switched on."""
    return JSONResponse(content=await reminders.available_methods())
