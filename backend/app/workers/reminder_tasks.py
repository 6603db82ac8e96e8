"""Celery tasks driving bill reminder passes from beat."""
import logging

from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="reminders.process_bill_reminders")
def process_bill_reminders():
    """Run one reminder pass over all active bills.

    Duplicate triggers (beat plus the in-process scheduler, retries) are
    harmless: every notification is created under its idempotency key.
    """
    logger.info("process_bill_reminders: starting")
    try:
        from app.reminders.runtime import run_reminder_pass

        stats = run_reminder_pass()
        return stats.as_dict()

    except Exception as exc:
        logger.exception("process_bill_reminders failed: %s", exc)
        return {"status": "error", "error": str(exc)}


@celery_app.task(name="reminders.run_maintenance")
def run_maintenance():
    """Prune reminder ledgers and delete old dismissed notifications."""
    logger.info("run_maintenance: starting")
    try:
        from app.reminders.runtime import run_maintenance_pass

        stats = run_maintenance_pass()
        return stats.as_dict()

    except Exception as exc:
        logger.exception("run_maintenance failed: %s", exc)
        return {"status": "error", "error": str(exc)}
