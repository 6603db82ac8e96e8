"""Tests for the SQLAlchemy notification sink and bill store.

Uses MagicMock sessions; the unique idempotency index is simulated by
raising IntegrityError from the SAVEPOINT insert.
"""
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from app.models.recurring_bill import RecurringBill
from app.models.user import User
from app.reminders.bill import BillState, bill_state_from_model
from app.reminders.evaluator import mark_reminder_sent
from app.reminders.ledger import ReminderLedger
from app.reminders.processor import MalformedBill, NotificationPayload, ReminderProcessor
from app.services.bill_store import BillNotFound, SqlBillStore
from app.services.notifications import SqlNotificationSink

UTC = timezone.utc


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _payload() -> NotificationPayload:
    return NotificationPayload(
        user_id=uuid.uuid4(),
        type="bill_reminder",
        title="Gas due tomorrow",
        message="Your Gas bill is due tomorrow.",
        source_id=uuid.uuid4(),
        priority=6,
    )


def _integrity_error() -> IntegrityError:
    return IntegrityError("INSERT INTO notifications", {}, Exception("duplicate key"))


def _make_row(**kwargs) -> MagicMock:
    """Create a mock RecurringBill row with its owner loaded."""
    owner = MagicMock(spec=User)
    owner.id = uuid.uuid4()
    owner.email = "owner@example.com"
    owner.name = "Ravi"
    owner.email_reminders_enabled = True

    row = MagicMock(spec=RecurringBill)
    row.id = kwargs.get("id", uuid.uuid4())
    row.user_id = owner.id
    row.owner = owner
    row.name = "Gas"
    row.bill_cycle = "monthly"
    row.due_day = 15
    row.start_date = datetime(2025, 1, 1, tzinfo=UTC)
    row.timezone = "Asia/Kolkata"
    row.custom_interval_days = None
    row.end_date = None
    row.reminder_offsets = kwargs.get("reminder_offsets", [3, 1])
    row.status = "active"
    row.reminders_sent = {"2026-01-15": [3]}
    row.marked_paid_until = None
    row.amount = None
    row.currency = "INR"
    row.category = "utilities"
    row.notes = None
    return row


# ─── Notification sink ────────────────────────────────────────────────────────

def test_create_if_absent_inserts_new_notification():
    db = MagicMock()
    sink = SqlNotificationSink(db)

    result = sink.create_if_absent("bill_reminder:abc:2026-01-15:1", _payload())

    assert result.was_created is True
    db.begin_nested.assert_called_once()
    added = db.add.call_args.args[0]
    assert added.idempotency_key == "bill_reminder:abc:2026-01-15:1"
    assert added.channel_in_app is True
    db.commit.assert_called_once()


def test_create_if_absent_returns_existing_on_duplicate_key():
    db = MagicMock()
    db.add.side_effect = _integrity_error()
    existing = MagicMock()
    existing.id = uuid.uuid4()
    db.execute.return_value.scalars.return_value.first.return_value = existing

    result = SqlNotificationSink(db).create_if_absent("bill_reminder:abc:2026-01-15:1", _payload())

    assert result.was_created is False
    assert result.notification_id == existing.id
    db.rollback.assert_not_called()


def test_create_if_absent_reraises_when_no_existing_row():
    db = MagicMock()
    db.add.side_effect = _integrity_error()
    db.execute.return_value.scalars.return_value.first.return_value = None

    with pytest.raises(IntegrityError):
        SqlNotificationSink(db).create_if_absent("bill_reminder:abc:2026-01-15:1", _payload())

    db.rollback.assert_called_once()


def test_mark_email_sent_commits():
    db = MagicMock()
    SqlNotificationSink(db).mark_email_sent(uuid.uuid4(), datetime(2026, 1, 15, tzinfo=UTC))
    db.execute.assert_called_once()
    db.commit.assert_called_once()


def test_delete_dismissed_before_returns_rowcount():
    db = MagicMock()
    db.execute.return_value.rowcount = 7
    assert SqlNotificationSink(db).delete_dismissed_before(datetime(2025, 10, 1, tzinfo=UTC)) == 7
    db.commit.assert_called_once()


# ─── Bill store ───────────────────────────────────────────────────────────────

def test_find_active_bills_converts_rows():
    row = _make_row()
    db = MagicMock()
    db.execute.return_value.scalars.return_value.all.return_value = [row]

    [bill] = SqlBillStore(db).find_active_bills()

    assert bill.id == row.id
    assert bill.cycle == "monthly"
    assert bill.reminder_offsets == (3, 1)
    assert bill.reminders_sent == ReminderLedger({"2026-01-15": [3]})
    assert bill.owner.email == "owner@example.com"
    assert bill.notes == ""


def test_find_active_bills_reports_malformed_rows():
    good = _make_row()
    bad_ledger = _make_row()
    bad_ledger.reminders_sent = {"2026-01-15": 5}
    weekly_day_15 = _make_row()
    weekly_day_15.bill_cycle = "weekly"
    db = MagicMock()
    db.execute.return_value.scalars.return_value.all.return_value = [bad_ledger, good, weekly_day_15]

    bills = SqlBillStore(db).find_active_bills()

    assert [type(b) for b in bills] == [MalformedBill, BillState, MalformedBill]
    assert bills[0].id == bad_ledger.id
    assert "0-6" in bills[2].error


def test_malformed_row_is_counted_by_the_pass():
    bad = _make_row()
    bad.reminders_sent = {"2026-01-15": 5}
    db = MagicMock()
    db.execute.return_value.scalars.return_value.all.return_value = [bad]

    stats = ReminderProcessor(SqlBillStore(db), MagicMock(), rng=lambda: 1.0).run_once()

    assert (stats.processed, stats.errors) == (1, 1)


def test_save_ledger_updates_only_the_ledger_column():
    """A user's pause or mark-paid after the snapshot was loaded must survive the write."""
    snapshot = bill_state_from_model(_make_row())
    db = MagicMock()
    db.execute.return_value.rowcount = 1

    SqlBillStore(db).save_ledger(mark_reminder_sent(snapshot, "2026-01-15", 1))

    stmt = db.execute.call_args.args[0]
    params = stmt.compile().params
    assert params["reminders_sent"] == {"2026-01-15": [1, 3]}
    assert "status" not in params
    assert "marked_paid_until" not in params
    db.commit.assert_called_once()


def test_save_ledger_missing_bill_raises():
    db = MagicMock()
    db.execute.return_value.rowcount = 0
    bill = bill_state_from_model(_make_row())

    with pytest.raises(BillNotFound):
        SqlBillStore(db).save_ledger(bill)
    db.commit.assert_not_called()
    db.rollback.assert_called_once()


def test_get_returns_snapshot():
    row = _make_row()
    db = MagicMock()
    db.get.return_value = row

    assert SqlBillStore(db).get(row.id).id == row.id
