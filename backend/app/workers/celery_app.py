from celery import Celery
from celery.schedules import crontab

from app.core.config import settings

celery_app = Celery(
    "reminder_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.reminder_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# Alternative to the in-process scheduler (set SCHEDULER_ENABLED=false when
# running beat). Hourly so every timezone hears within an hour of local midnight.
celery_app.conf.beat_schedule = {
    "process-bill-reminders-hourly": {
        "task": "reminders.process_bill_reminders",
        "schedule": crontab(minute=0),
    },
    "reminder-maintenance-daily": {
        "task": "reminders.run_maintenance",
        "schedule": crontab(hour=3, minute=30),
    },
}
