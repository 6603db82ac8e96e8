"""Wiring: build processors on a fresh sync session per pass, and the process-wide scheduler."""
from app.core.config import Settings, settings as default_settings
from app.db.session import get_sync_session
from app.reminders.processor import MaintenanceStats, PassStats, ReminderProcessor
from app.reminders.scheduler import ReminderScheduler
from app.services.bill_store import SqlBillStore
from app.services.email import EmailDispatcher
from app.services.notifications import SqlNotificationSink


def build_processor(db, config: Settings | None = None) -> ReminderProcessor:
    cfg = config or default_settings
    return ReminderProcessor(
        SqlBillStore(db),
        SqlNotificationSink(db),
        EmailDispatcher(cfg),
        prune_probability=cfg.LEDGER_PRUNE_PROBABILITY,
        ledger_retention_days=cfg.LEDGER_RETENTION_DAYS,
        notification_retention_days=cfg.NOTIFICATION_RETENTION_DAYS,
        notification_expiry_days=cfg.NOTIFICATION_EXPIRY_DAYS,
        frontend_url=cfg.FRONTEND_URL,
    )


def run_reminder_pass() -> PassStats:
    db = get_sync_session()
    try:
        return build_processor(db).run_once()
    finally:
        db.close()


def run_maintenance_pass() -> MaintenanceStats:
    db = get_sync_session()
    try:
        return build_processor(db).run_maintenance()
    finally:
        db.close()


def create_scheduler(config: Settings | None = None) -> ReminderScheduler:
    cfg = config or default_settings
    return ReminderScheduler(
        run_reminder_pass,
        run_maintenance_pass,
        interval_seconds=cfg.REMINDER_INTERVAL_SECONDS,
        startup_delay_seconds=cfg.REMINDER_STARTUP_DELAY_SECONDS,
        maintenance_interval_seconds=cfg.MAINTENANCE_INTERVAL_SECONDS,
    )
