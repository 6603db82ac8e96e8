"""Tests for ORM-level validation on recurring bills and notifications."""
import pytest

from app.models.notification import Notification
from app.models.recurring_bill import RecurringBill


def test_reminder_offsets_accept_valid_list():
    bill = RecurringBill(reminder_offsets=(3, 1, 0))
    assert bill.reminder_offsets == [3, 1, 0]


@pytest.mark.parametrize("offsets", [[], [1, 2, 3, 4, 5, 6], [31], [-1], ["3"]])
def test_reminder_offsets_rejects_invalid(offsets):
    with pytest.raises(ValueError):
        RecurringBill(reminder_offsets=offsets)


def test_bill_cycle_must_be_known():
    with pytest.raises(ValueError):
        RecurringBill(bill_cycle="hourly")


def test_status_must_be_known():
    with pytest.raises(ValueError):
        RecurringBill(status="archived")


def test_unknown_category_becomes_other():
    assert RecurringBill(category="gym").category == "other"
    assert RecurringBill(category="rent").category == "rent"


def test_notification_type_must_be_known():
    with pytest.raises(ValueError):
        Notification(type="promo")
    with pytest.raises(ValueError):
        Notification(source_type="invoice")


def test_due_day_is_checked_per_cycle():
    checks = {c.name: str(c.sqltext) for c in RecurringBill.__table__.constraints if c.name and c.name.startswith("ck_")}
    per_cycle = checks["ck_recurring_bills_due_day_per_cycle"]
    assert "due_day BETWEEN 0 AND 6" in per_cycle
    assert "due_day BETWEEN 1 AND 31" in per_cycle
