"""User-driven bill state transitions (pause, resume, mark paid, soft delete)."""
from dataclasses import replace
from datetime import datetime, timedelta

from app.reminders.bill import STATUS_ACTIVE, STATUS_DELETED, STATUS_PAUSED, BillState
from app.reminders.due_dates import current_due_date, local_date, local_midnight, resolve_timezone


class InvalidTransition(ValueError):
    """Raised when a transition is not allowed from the bill's current status."""


def pause(bill: BillState) -> BillState:
    if bill.status != STATUS_ACTIVE:
        raise InvalidTransition(f"Cannot pause a bill that is {bill.status}")
    return replace(bill, status=STATUS_PAUSED)


def resume(bill: BillState) -> BillState:
    if bill.status != STATUS_PAUSED:
        raise InvalidTransition(f"Cannot resume a bill that is {bill.status}")
    return replace(bill, status=STATUS_ACTIVE)


def mark_paid(bill: BillState, now: datetime) -> BillState:
    """Suppress the current cycle's reminders until the day after its due date."""
    if bill.status == STATUS_DELETED:
        raise InvalidTransition("Cannot mark a deleted bill as paid")
    tz = resolve_timezone(bill.timezone)
    due = current_due_date(bill, now)
    paid_until = local_midnight(local_date(due, tz) + timedelta(days=1), tz)
    return replace(bill, marked_paid_until=paid_until)


def soft_delete(bill: BillState) -> BillState:
    return replace(bill, status=STATUS_DELETED)
