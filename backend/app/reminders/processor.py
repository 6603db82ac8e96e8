"""Reminder pass: evaluate every active bill and deliver due reminders.

The processor is written against four small ports so it can run on the
SQLAlchemy store (hourly scheduler, Celery beat) or on in-memory fakes
(tests):

  BillStore          find_active_bills(), save_ledger(bill)
  NotificationSink   create_if_absent(key, payload), mark_email_sent(id, at),
                     delete_dismissed_before(cutoff)
  EmailDispatcher    enabled, send(to, subject, html) -> bool
  Clock              () -> aware datetime

Per-bill isolation: any exception while processing one bill is logged with
the bill id, counted, and the pass moves on to the next bill.
Rows the store cannot turn into a BillState come back as MalformedBill and
are counted the same way. A pass only ever writes the sent-reminder ledger;
status and mark-paid belong to the user.
"""
import logging
import random
import time
import uuid
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

from app.reminders.bill import BillState
from app.reminders.content import (
    build_notification_content,
    build_notification_details,
    build_reminder_email,
    idempotency_key,
)
from app.reminders.evaluator import DueReminder, mark_reminder_sent, prune_old_reminders, reminders_to_fire

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ─── Ports ───

@dataclass(frozen=True)
class NotificationPayload:
    user_id: uuid.UUID
    type: str
    title: str
    message: str
    source_id: uuid.UUID
    priority: int
    details: dict = field(default_factory=dict)
    source_type: str = "recurring_bill"
    action_url: str | None = "/bills"
    action_label: str | None = "View Bills"
    expires_at: datetime | None = None


@dataclass(frozen=True)
class MalformedBill:
    """A stored bill whose fields could not be read into a BillState."""
    id: uuid.UUID
    error: str


@dataclass(frozen=True)
class CreateResult:
    notification_id: uuid.UUID
    was_created: bool


class BillStore(Protocol):
    def find_active_bills(self) -> list[BillState | MalformedBill]: ...

    def save_ledger(self, bill: BillState) -> None: ...


class NotificationSink(Protocol):
    def create_if_absent(self, idempotency_key: str, payload: NotificationPayload) -> CreateResult: ...

    def mark_email_sent(self, notification_id: uuid.UUID, sent_at: datetime) -> None: ...

    def delete_dismissed_before(self, cutoff: datetime) -> int: ...


class EmailDispatcher(Protocol):
    enabled: bool

    def send(self, to: str, subject: str, html: str) -> bool: ...


# ─── Pass results ───

@dataclass
class PassStats:
    processed: int = 0
    sent: int = 0
    skipped: int = 0
    errors: int = 0
    duration_ms: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class MaintenanceStats:
    pruned_bills: int = 0
    deleted_notifications: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


# ─── Processor ───

class ReminderProcessor:
    """Runs reminder and maintenance passes against the given ports."""

    def __init__(
        self,
        store: BillStore,
        sink: NotificationSink,
        mailer: EmailDispatcher | None = None,
        *,
        clock: Clock = utc_now,
        prune_probability: float = 0.1,
        ledger_retention_days: int = 90,
        notification_retention_days: int = 90,
        notification_expiry_days: int = 30,
        frontend_url: str = "",
        rng: Callable[[], float] = random.random,
    ):
        self._store = store
        self._sink = sink
        self._mailer = mailer
        self._clock = clock
        self._prune_probability = prune_probability
        self._ledger_retention_days = ledger_retention_days
        self._notification_retention_days = notification_retention_days
        self._notification_expiry_days = notification_expiry_days
        self._frontend_url = frontend_url
        self._rng = rng

    def run_once(self) -> PassStats:
        """Process every active bill once.

        Raises whatever the Bill Store raises when the bill list itself
        cannot be loaded; per-bill faults never escape.
        """
        started = time.monotonic()
        logger.info("Reminder pass: starting")

        try:
            bills = self._store.find_active_bills()
        except Exception:
            logger.exception("Reminder pass: failed to load active bills")
            raise

        stats = PassStats(processed=len(bills))
        if not bills:
            logger.info("Reminder pass: no active bills to process")
            return stats

        now = self._clock()
        for bill in bills:
            if isinstance(bill, MalformedBill):
                stats.errors += 1
                logger.error("Reminder pass: malformed bill %s: %s", bill.id, bill.error)
                continue
            try:
                self._process_bill(bill, now, stats)
            except Exception as exc:
                stats.errors += 1
                logger.exception("Reminder pass: error processing bill %s: %s", bill.id, exc)

        stats.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Reminder pass: complete in %dms: processed=%d, sent=%d, skipped=%d, errors=%d",
            stats.duration_ms, stats.processed, stats.sent, stats.skipped, stats.errors,
        )
        return stats

    def run_maintenance(self) -> MaintenanceStats:
        """Prune every active bill's ledger and delete old dismissed notifications."""
        logger.info("Maintenance pass: starting")
        now = self._clock()
        stats = MaintenanceStats()

        for bill in self._store.find_active_bills():
            if isinstance(bill, MalformedBill):
                stats.errors += 1
                logger.error("Maintenance pass: malformed bill %s: %s", bill.id, bill.error)
                continue
            try:
                if self._prune(bill, now) is not bill:
                    stats.pruned_bills += 1
            except Exception as exc:
                stats.errors += 1
                logger.exception("Maintenance pass: error pruning bill %s: %s", bill.id, exc)

        cutoff = now - timedelta(days=self._notification_retention_days)
        try:
            stats.deleted_notifications = self._sink.delete_dismissed_before(cutoff)
        except Exception as exc:
            stats.errors += 1
            logger.exception("Maintenance pass: notification cleanup failed: %s", exc)

        logger.info(
            "Maintenance pass: complete: pruned_bills=%d, deleted_notifications=%d, errors=%d",
            stats.pruned_bills, stats.deleted_notifications, stats.errors,
        )
        return stats

    # ─── Per-bill steps ───

    def _prune(self, bill: BillState, now: datetime) -> BillState:
        pruned = prune_old_reminders(bill, now, self._ledger_retention_days)
        if pruned is not bill:
            self._store.save_ledger(pruned)
        return pruned

    def _process_bill(self, bill: BillState, now: datetime, stats: PassStats) -> None:
        if self._rng() < self._prune_probability:
            bill = self._prune(bill, now)

        for reminder in reminders_to_fire(bill, now):
            bill = self._deliver(bill, reminder, now, stats)

    def _deliver(self, bill: BillState, reminder: DueReminder, now: datetime, stats: PassStats) -> BillState:
        key = idempotency_key(bill, reminder.due_date_key, reminder.offset)
        content = build_notification_content(bill, reminder.offset, reminder.due_date)
        payload = NotificationPayload(
            user_id=bill.user_id,
            type=content.type,
            title=content.title,
            message=content.message,
            source_id=bill.id,
            priority=content.priority,
            details=build_notification_details(bill, reminder.offset, reminder.due_date),
            expires_at=now + timedelta(days=self._notification_expiry_days),
        )

        result = self._sink.create_if_absent(key, payload)

        # The ledger write must land before the next bill; it also heals a
        # ledger that missed an earlier, already-delivered notification.
        updated = mark_reminder_sent(bill, reminder.due_date_key, reminder.offset)
        if updated is not bill:
            self._store.save_ledger(updated)

        if not result.was_created:
            stats.skipped += 1
            logger.info("Skipped duplicate reminder: %s", key)
            return updated

        stats.sent += 1
        logger.info(
            "Sent reminder: bill %s (%d days before %s)",
            bill.id, reminder.offset, reminder.due_date_key,
        )

        if reminder.is_due_today:
            self._send_email(updated, reminder, result.notification_id, now)
        return updated

    def _send_email(self, bill: BillState, reminder: DueReminder, notification_id: uuid.UUID, now: datetime) -> None:
        """Best effort: failures are logged and never affect the in-app notification."""
        mailer = self._mailer
        owner = bill.owner
        if mailer is None or not mailer.enabled:
            return
        if owner is None or not owner.email or not owner.email_reminders_enabled:
            return

        subject, body = build_reminder_email(bill, reminder.offset, reminder.due_date, self._frontend_url, now)
        try:
            delivered = mailer.send(owner.email, subject, body)
        except Exception as exc:
            logger.warning("Reminder email failed for bill %s: %s", bill.id, exc)
            return

        if not delivered:
            logger.warning("Reminder email not delivered for bill %s", bill.id)
            return

        try:
            self._sink.mark_email_sent(notification_id, now)
        except Exception as exc:
            logger.warning("Could not flag email sent on notification %s: %s", notification_id, exc)
            return
        logger.info("Reminder email sent for bill %s", bill.id)
