#=================================================================
# app/main_app.py
# FastAPI application entry-point.
#=================================================================

import logging

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from app import logging_filters
from app.admin_routes import router as admin_router
from app.auth import verify_admin
from app.config import settings
from app.db import dispose_db, get_engine, init_db
from app.feature_flags import FeatureFlagStore
from app.messaging.mailer import EmailChannel
from app.messaging.sms import SmsChannel
from app.reminders.audit import AuditLog
from app.reminders.dispatch import ReminderDispatcher
from app.reminders.job_store import JobStore
from app.reminders.repository import SqlTenantRepository
from app.reminders.service import ReminderRejected, ReminderService
from app.routes import router as reminders_router

# --- FastAPI instance ---
app = FastAPI(
    title="RentAlert Reminder Service",
    description="Rent reminders for landlords: batch SMS/email sends tracked as background jobs.",
)

# --- Logging setup (console, INFO level) ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s | %(message)s"
)
logger = logging.getLogger("uvicorn.error")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging_filters.install()

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_reminder_service(audit: AuditLog, flags: FeatureFlagStore) -> ReminderService:
    """Wire the reminder engine to the SQL store and the real SMS/email providers."""
    if settings.SMTP_TIMEOUT_SECONDS >= settings.REMINDER_SEND_TIMEOUT_SECONDS:
        logger.warning("[EMAIL] SMTP_TIMEOUT_SECONDS (%s) should be below REMINDER_SEND_TIMEOUT_SECONDS (%s); "
                       "timed-out emails may still be delivered",
                       settings.SMTP_TIMEOUT_SECONDS, settings.REMINDER_SEND_TIMEOUT_SECONDS)
    dispatcher = ReminderDispatcher(
        JobStore(),
        SqlTenantRepository(),
        {"sms": SmsChannel(), "email": EmailChannel()},
        audit,
        send_delay=settings.REMINDER_SEND_DELAY_SECONDS,
        send_timeout=settings.REMINDER_SEND_TIMEOUT_SECONDS,
    )
    return ReminderService(
        dispatcher,
        flags,
        ttl_seconds=settings.REMINDER_JOB_TTL_SECONDS,
        sweep_interval=settings.REMINDER_SWEEP_INTERVAL_SECONDS,
    )


# ---------------- Include routers ----------------

app.include_router(reminders_router)     # /api/reminders/*

# Admin API (HTTP Basic)
app.include_router(
    admin_router,
    prefix="/admin",
    dependencies=[Depends(verify_admin)],
)

# --- Root endpoint ---
@app.get("/")
async def home():
    return {"status": "running", "service": "RentAlert Reminder Service"}


@app.get("/api/health")
async def api_health():
    """Health check: DB reachability + how many reminder jobs are held in memory."""
    result = {"ok": True, "db": {"ok": True}, "jobs": len(app.state.reminders.store)}
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        result["ok"] = False
        result["db"] = {"ok": False, "error": str(e)}
    return JSONResponse(status_code=200 if result["ok"] else 503, content=result)


# --- Request rejected before a job was created ---
@app.exception_handler(ReminderRejected)
async def reminder_rejected_handler(request: Request, exc: ReminderRejected):
    return JSONResponse(status_code=exc.status_code, content=exc.body)


# --- Global error handler (keeps full stack trace in logs) ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Request failed: {str(exc)}"},
    )


# ---- Reminder engine lifecycle ----

@app.on_event("startup")
async def _startup():
    # Init DB tables and default feature flags
    await init_db()
    app.state.audit = AuditLog()
    app.state.flags = FeatureFlagStore()
    await app.state.flags.seed_defaults()
    # Job registry + sweeper start together
    app.state.reminders = build_reminder_service(app.state.audit, app.state.flags)
    app.state.reminders.start()


@app.on_event("shutdown")
async def _shutdown():
    reminders = getattr(app.state, "reminders", None)
    if reminders is not None:
        await reminders.stop()
    await dispose_db()

#if __name__ == "__main__":
#    import uvicorn
#
#    uvicorn.run(app, host="0.0.0.0", port=8000)
