"""Tests for the reminder processor (one scheduler pass).

Uses in-memory fakes for the Bill Store, Notification Sink and Email
Dispatcher so no database or SMTP server is needed.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.reminders.bill import BillOwner, BillState
from app.reminders.ledger import ReminderLedger
from app.reminders.processor import CreateResult, MalformedBill, ReminderProcessor

UTC = timezone.utc
NOW = datetime(2026, 1, 14, 10, tzinfo=UTC)
DUE_DAY_NOW = datetime(2026, 1, 15, 10, tzinfo=UTC)


# ─── Fakes ────────────────────────────────────────────────────────────────────

class FakeBillStore:
    def __init__(self, bills: list[BillState], fail_load: bool = False, malformed: list[MalformedBill] | None = None):
        self.bills = {bill.id: bill for bill in bills}
        self.malformed = malformed or []
        self.saves: list[BillState] = []
        self.fail_load = fail_load

    def find_active_bills(self) -> list[BillState | MalformedBill]:
        if self.fail_load:
            raise ConnectionError("database unreachable")
        return [bill for bill in self.bills.values() if bill.status == "active"] + self.malformed

    def save_ledger(self, bill: BillState) -> None:
        self.bills[bill.id] = bill
        self.saves.append(bill)


class FakeNotificationSink:
    def __init__(self, failing_bill_ids: set | None = None, deleted_count: int = 0):
        self.notifications: dict[str, object] = {}
        self.ids: dict[str, uuid.UUID] = {}
        self.email_marked: list[uuid.UUID] = []
        self.failing_bill_ids = failing_bill_ids or set()
        self.deleted_count = deleted_count
        self.cleanup_cutoffs: list[datetime] = []

    def create_if_absent(self, idempotency_key, payload) -> CreateResult:
        if payload.source_id in self.failing_bill_ids:
            raise RuntimeError("insert failed")
        if idempotency_key in self.notifications:
            return CreateResult(notification_id=self.ids[idempotency_key], was_created=False)
        self.notifications[idempotency_key] = payload
        self.ids[idempotency_key] = uuid.uuid4()
        return CreateResult(notification_id=self.ids[idempotency_key], was_created=True)

    def mark_email_sent(self, notification_id, sent_at) -> None:
        self.email_marked.append(notification_id)

    def delete_dismissed_before(self, cutoff) -> int:
        self.cleanup_cutoffs.append(cutoff)
        return self.deleted_count


class FakeMailer:
    def __init__(self, enabled: bool = True, fail: bool = False):
        self.enabled = enabled
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    def send(self, to, subject, html) -> bool:
        if self.fail:
            raise OSError("SMTP connection refused")
        self.sent.append((to, subject))
        return True


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _make_bill(offsets=(3, 1), **kwargs) -> BillState:
    defaults = dict(
        id=uuid.uuid4(),
        user_id=uuid.uuid4(),
        name="Broadband",
        cycle="monthly",
        due_day=15,
        start_date=datetime(2025, 1, 1, tzinfo=UTC),
        timezone="UTC",
        reminder_offsets=offsets,
        owner=BillOwner(user_id=uuid.uuid4(), email="owner@example.com", name="Asha"),
    )
    defaults.update(kwargs)
    return BillState(**defaults)


def _processor(store, sink, mailer=None, now=NOW, rng_value=1.0, **kwargs) -> ReminderProcessor:
    return ReminderProcessor(
        store,
        sink,
        mailer,
        clock=lambda: now,
        rng=lambda: rng_value,
        frontend_url="https://app.example.com",
        **kwargs,
    )


# ─── Reminder pass ────────────────────────────────────────────────────────────

def test_pass_sends_due_reminders_and_records_ledger():
    bill = _make_bill()
    store, sink = FakeBillStore([bill]), FakeNotificationSink()

    stats = _processor(store, sink).run_once()

    assert (stats.processed, stats.sent, stats.skipped, stats.errors) == (1, 2, 0, 0)
    assert set(sink.notifications) == {
        f"bill_reminder:{bill.id}:2026-01-15:3",
        f"bill_reminder:{bill.id}:2026-01-15:1",
    }
    assert store.bills[bill.id].reminders_sent.to_document() == {"2026-01-15": [1, 3]}


def test_notification_payload_fields():
    bill = _make_bill(offsets=(1,))
    store, sink = FakeBillStore([bill]), FakeNotificationSink()

    _processor(store, sink).run_once()

    [payload] = sink.notifications.values()
    assert payload.user_id == bill.user_id
    assert payload.source_id == bill.id
    assert payload.source_type == "recurring_bill"
    assert payload.title == "Broadband due tomorrow"
    assert payload.priority == 6
    assert payload.action_url == "/bills"
    assert payload.expires_at == NOW + timedelta(days=30)


def test_second_pass_is_idempotent():
    store, sink = FakeBillStore([_make_bill()]), FakeNotificationSink()
    processor = _processor(store, sink)

    processor.run_once()
    stats = processor.run_once()

    assert stats.sent == 0
    assert stats.skipped == 0
    assert len(sink.notifications) == 2


def test_existing_notification_is_skipped_and_ledger_healed():
    """Crash between insert and ledger write: the next pass skips and repairs."""
    bill = _make_bill(offsets=(1,))
    store, sink = FakeBillStore([bill]), FakeNotificationSink()
    key = f"bill_reminder:{bill.id}:2026-01-15:1"
    sink.notifications[key] = object()
    sink.ids[key] = uuid.uuid4()

    stats = _processor(store, sink).run_once()

    assert stats.sent == 0
    assert stats.skipped == 1
    assert store.bills[bill.id].reminders_sent.was_sent("2026-01-15", 1)


def test_no_active_bills():
    stats = _processor(FakeBillStore([]), FakeNotificationSink()).run_once()
    assert stats.processed == 0
    assert stats.sent == 0


def test_inactive_bills_are_not_processed():
    store = FakeBillStore([_make_bill(status="paused")])
    stats = _processor(store, FakeNotificationSink()).run_once()
    assert stats.processed == 0


def test_failure_on_one_bill_does_not_stop_the_pass():
    bills = [_make_bill(offsets=(1,)) for _ in range(3)]
    store = FakeBillStore(bills)
    sink = FakeNotificationSink(failing_bill_ids={bills[1].id})

    stats = _processor(store, sink).run_once()

    assert stats.processed == 3
    assert stats.sent == 2
    assert stats.errors == 1
    assert not store.bills[bills[1].id].reminders_sent.was_sent("2026-01-15", 1)


def test_malformed_bill_counts_as_error():
    good = _make_bill(offsets=(1,))
    store = FakeBillStore([good], malformed=[MalformedBill(id=uuid.uuid4(), error="bad ledger")])

    stats = _processor(store, FakeNotificationSink()).run_once()

    assert stats.processed == 2
    assert stats.sent == 1
    assert stats.errors == 1


def test_bill_store_failure_propagates():
    store = FakeBillStore([], fail_load=True)
    with pytest.raises(ConnectionError):
        _processor(store, FakeNotificationSink()).run_once()


# ─── E-mail ───────────────────────────────────────────────────────────────────

def test_due_today_sends_email_and_flags_notification():
    bill = _make_bill(offsets=(0,))
    store, sink, mailer = FakeBillStore([bill]), FakeNotificationSink(), FakeMailer()

    stats = _processor(store, sink, mailer, now=DUE_DAY_NOW).run_once()

    assert stats.sent == 1
    assert mailer.sent == [("owner@example.com", "Broadband is due today!")]
    assert sink.email_marked == [sink.ids[f"bill_due_today:{bill.id}:2026-01-15:0"]]


def test_email_failure_keeps_notification():
    bill = _make_bill(offsets=(0,))
    store, sink, mailer = FakeBillStore([bill]), FakeNotificationSink(), FakeMailer(fail=True)

    stats = _processor(store, sink, mailer, now=DUE_DAY_NOW).run_once()

    assert stats.sent == 1
    assert stats.errors == 0
    assert len(sink.notifications) == 1
    assert sink.email_marked == []
    assert store.bills[bill.id].reminders_sent.was_sent("2026-01-15", 0)


def test_email_disabled_never_calls_dispatcher():
    store, sink, mailer = FakeBillStore([_make_bill(offsets=(0,))]), FakeNotificationSink(), FakeMailer(enabled=False)

    _processor(store, sink, mailer, now=DUE_DAY_NOW).run_once()

    assert mailer.sent == []
    assert sink.email_marked == []


def test_owner_opt_out_skips_email():
    owner = BillOwner(user_id=uuid.uuid4(), email="owner@example.com", email_reminders_enabled=False)
    store, sink, mailer = FakeBillStore([_make_bill(offsets=(0,), owner=owner)]), FakeNotificationSink(), FakeMailer()

    _processor(store, sink, mailer, now=DUE_DAY_NOW).run_once()

    assert mailer.sent == []


def test_advance_reminders_do_not_email():
    store, sink, mailer = FakeBillStore([_make_bill(offsets=(1,))]), FakeNotificationSink(), FakeMailer()

    stats = _processor(store, sink, mailer).run_once()

    assert stats.sent == 1
    assert mailer.sent == []


# ─── Ledger pruning ───────────────────────────────────────────────────────────

def test_probabilistic_prune_runs_when_rng_below_threshold():
    bill = _make_bill(reminders_sent=ReminderLedger({"2025-06-15": [3]}), offsets=(1,))
    store = FakeBillStore([bill])

    _processor(store, FakeNotificationSink(), rng_value=0.0, prune_probability=0.1).run_once()

    assert "2025-06-15" not in store.bills[bill.id].reminders_sent


def test_probabilistic_prune_skipped_when_rng_above_threshold():
    bill = _make_bill(reminders_sent=ReminderLedger({"2025-06-15": [3]}), offsets=(5,))
    store = FakeBillStore([bill])

    _processor(store, FakeNotificationSink(), now=datetime(2026, 1, 5, tzinfo=UTC), rng_value=0.99).run_once()

    assert store.saves == []
    assert "2025-06-15" in store.bills[bill.id].reminders_sent


# ─── Maintenance ──────────────────────────────────────────────────────────────

def test_maintenance_prunes_ledgers_and_cleans_notifications():
    stale = _make_bill(reminders_sent=ReminderLedger({"2025-06-15": [3], "2026-01-15": [3]}))
    fresh = _make_bill(reminders_sent=ReminderLedger({"2026-01-15": [3]}))
    store = FakeBillStore([stale, fresh])
    sink = FakeNotificationSink(deleted_count=4)

    stats = _processor(store, sink).run_maintenance()

    assert stats.as_dict() == {"pruned_bills": 1, "deleted_notifications": 4, "errors": 0}
    assert store.bills[stale.id].reminders_sent.to_document() == {"2026-01-15": [3]}
    assert sink.cleanup_cutoffs == [NOW - timedelta(days=90)]


def test_maintenance_counts_cleanup_failure():
    class BrokenSink(FakeNotificationSink):
        def delete_dismissed_before(self, cutoff):
            raise RuntimeError("delete failed")

    stats = _processor(FakeBillStore([]), BrokenSink()).run_maintenance()

    assert stats.errors == 1
    assert stats.deleted_notifications == 0


def test_maintenance_counts_malformed_bills():
    store = FakeBillStore([], malformed=[MalformedBill(id=uuid.uuid4(), error="bad ledger")])

    stats = _processor(store, FakeNotificationSink()).run_maintenance()

    assert stats.errors == 1
    assert stats.pruned_bills == 0
