"""Reminder scheduler endpoints: status and manual trigger."""
import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request, status

from app.core.limiter import limiter
from app.reminders.runtime import run_reminder_pass
from app.reminders.scheduler import ReminderScheduler
from app.schemas.reminder import MaintenanceStatsOut, PassStatsOut, SchedulerStatusOut

logger = logging.getLogger(__name__)

router = APIRouter()


def _scheduler(request: Request) -> ReminderScheduler | None:
    return getattr(request.app.state, "scheduler", None)


# ─── GET /reminders/status ───

@router.get(
    "/status",
    response_model=SchedulerStatusOut,
    summary="Reminder scheduler state and the last pass counters",
)
async def get_status(request: Request):
    scheduler = _scheduler(request)
    if scheduler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Scheduler not configured.")

    return SchedulerStatusOut(
        running=scheduler.is_running,
        interval_seconds=scheduler.interval_seconds,
        maintenance_interval_seconds=scheduler.maintenance_interval_seconds,
        last_pass_at=scheduler.last_pass_at,
        last_pass=PassStatsOut.model_validate(scheduler.last_pass) if scheduler.last_pass else None,
        last_maintenance=(
            MaintenanceStatsOut.model_validate(scheduler.last_maintenance)
            if scheduler.last_maintenance else None
        ),
        last_error=scheduler.last_error,
    )


# ─── POST /reminders/run ───

@router.post(
    "/run",
    response_model=PassStatsOut,
    summary="Run one reminder pass now",
)
@limiter.limit("5/minute")
async def run_now(request: Request):
    scheduler = _scheduler(request)
    job = scheduler.run_once if scheduler is not None else run_reminder_pass
    try:
        stats = await asyncio.to_thread(job)
    except Exception as exc:
        logger.exception("Manual reminder pass failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Reminder pass failed.")

    logger.info("Manual reminder pass: %s", stats.as_dict())
    return PassStatsOut.model_validate(stats)
