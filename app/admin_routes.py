#=======================================================================================
# app/admin_routes.py
# Admin endpoints. These are protected via Basic Auth in main_app.py
# and mounted under /admin, so final paths are /admin/*.
#
# NOTE:
# - Landlord-facing reminder endpoints live in app.routes (bearer auth).
# - This module covers operator views: every reminder job in memory, and
#   the feature flags that switch SMS / email sending on and off.
#=======================================================================================

import logging

from pydantic import BaseModel
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from app.auth import verify_admin
from app.feature_flags import FeatureFlagStore
from app.routes import get_reminders
from app.reminders.service import ReminderService

logger = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["Admin API"])


def get_flags(request: Request) -> FeatureFlagStore:
    return request.app.state.flags


class FlagToggle(BaseModel):
    enabled: bool


# --------------------------------------------------------------------
# Reminder jobs
# --------------------------------------------------------------------

@router.get("/reminders/jobs")
async def admin_list_jobs(reminders: ReminderService = Depends(get_reminders)):
    """All jobs still held in memory (newest first), summary form."""
    jobs = await reminders.store.list()
    return JSONResponse(content={"jobs": [j.summary() | {"userId": j.user_id} for j in jobs]})


@router.get("/reminders/jobs/{job_id}")
async def admin_job_details(job_id: str, reminders: ReminderService = Depends(get_reminders)):
    job = await reminders.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JSONResponse(content={"job": job.to_dict() | {"userId": job.user_id}})


# --------------------------------------------------------------------
# Feature flags
# --------------------------------------------------------------------

@router.get("/features")
async def admin_list_features(flags: FeatureFlagStore = Depends(get_flags)):
    states = await flags.all()
    return JSONResponse(content={"features": {k: s.to_dict() for k, s in states.items()}})


@router.put("/features/{key}")
async def admin_toggle_feature(
    key: str,
    body: FlagToggle,
    admin: str = Depends(verify_admin),
    flags: FeatureFlagStore = Depends(get_flags),
):
    try:
        state = await flags.set_enabled(key, body.enabled, admin)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Feature flag '{key}' not found")
    return JSONResponse(content={"ok": True, "feature": state.to_dict()})
