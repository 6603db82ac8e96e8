"""Reminder evaluator: which reminder offsets of a bill must fire now.

Pure: takes a ``BillState`` snapshot and ``now``; never touches the store.
The scheduler records each delivered (due date, offset) pair back onto the
bill with :func:`mark_reminder_sent` and persists it before moving on.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from app.reminders.bill import BillState
from app.reminders.due_dates import (
    as_aware,
    current_due_date,
    local_date,
    resolve_timezone,
)

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_RETENTION_DAYS = 90


@dataclass(frozen=True)
class DueReminder:
    offset: int
    due_date: datetime
    due_date_key: str

    @property
    def is_due_today(self) -> bool:
        return self.offset == 0


def reminders_to_fire(bill: BillState, now: datetime) -> list[DueReminder]:
    """Return every (offset, due date) pair of ``bill`` that must fire at ``now``.

    An offset fires when local today lies in the inclusive window
    [due date − offset, due date] and the pair is not yet in the ledger.
    The inclusive lower bound lets a pass after downtime catch up on
    reminders whose trigger day was missed; the ledger check keeps them
    at most once.
    """
    if not bill.is_active:
        return []

    now = as_aware(now)
    due_date = current_due_date(bill, now)

    if bill.marked_paid_until is not None and as_aware(bill.marked_paid_until) > now:
        return []

    if bill.end_date is not None:
        end_date = as_aware(bill.end_date)
        if end_date < now or due_date > end_date:
            return []

    tz = resolve_timezone(bill.timezone)
    today = local_date(now, tz)
    due_day = local_date(due_date, tz)
    due_date_key = due_day.isoformat()

    firing: list[DueReminder] = []
    for offset in bill.reminder_offsets:
        reminder_day = due_day - timedelta(days=offset)
        if not (reminder_day <= today <= due_day):
            continue
        if bill.reminders_sent.was_sent(due_date_key, offset):
            continue
        firing.append(DueReminder(offset=offset, due_date=due_date, due_date_key=due_date_key))
    return firing


def mark_reminder_sent(bill: BillState, due_date_key: str, offset: int) -> BillState:
    """New state with ``(due_date_key, offset)`` recorded in the ledger."""
    ledger = bill.reminders_sent.mark_sent(due_date_key, offset)
    if ledger is bill.reminders_sent:
        return bill
    return replace(bill, reminders_sent=ledger)


def prune_old_reminders(
    bill: BillState,
    now: datetime,
    retention_days: int = DEFAULT_LEDGER_RETENTION_DAYS,
) -> BillState:
    """New state without ledger keys older than ``retention_days`` local days.

    Reminder offsets are at most 30 days, so any key still inside an active
    window is newer than the cutoff as long as retention_days >= 30.
    """
    tz = resolve_timezone(bill.timezone)
    cutoff_key = (local_date(now, tz) - timedelta(days=retention_days)).isoformat()
    ledger = bill.reminders_sent.prune_before(cutoff_key)
    if ledger is bill.reminders_sent:
        return bill
    logger.debug(
        "Bill %s: pruned %d ledger keys older than %s",
        bill.id, len(bill.reminders_sent) - len(ledger), cutoff_key,
    )
    return replace(bill, reminders_sent=ledger)
