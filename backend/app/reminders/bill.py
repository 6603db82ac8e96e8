"""Immutable bill snapshot used by the due-date and reminder logic.

The scheduler never mutates ORM rows inside the calculation code: a row is
converted to a ``BillState``, pure functions return new states, and the Bill
Store writes the result back.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from app.reminders.ledger import ReminderLedger

# ─── Cycles and statuses ───

CYCLE_WEEKLY = "weekly"
CYCLE_BIWEEKLY = "biweekly"
CYCLE_MONTHLY = "monthly"
CYCLE_QUARTERLY = "quarterly"
CYCLE_YEARLY = "yearly"
CYCLE_CUSTOM = "custom"

STATUS_ACTIVE = "active"
STATUS_PAUSED = "paused"
STATUS_DELETED = "deleted"

DAY_OF_MONTH_CYCLES = (CYCLE_MONTHLY, CYCLE_QUARTERLY, CYCLE_YEARLY)


@dataclass(frozen=True)
class BillOwner:
    """Owner contact info denormalised onto the bill for one pass."""
    user_id: uuid.UUID
    email: str | None = None
    name: str | None = None
    email_reminders_enabled: bool = True


@dataclass(frozen=True)
class BillState:
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    cycle: str
    due_day: int
    start_date: datetime
    timezone: str = "Asia/Kolkata"
    custom_interval_days: int | None = None
    end_date: datetime | None = None
    reminder_offsets: tuple[int, ...] = (3, 1)
    status: str = STATUS_ACTIVE
    reminders_sent: ReminderLedger = field(default_factory=ReminderLedger)
    marked_paid_until: datetime | None = None
    amount: Decimal | None = None
    currency: str = "INR"
    category: str = "other"
    notes: str = ""
    owner: BillOwner | None = None

    def __post_init__(self):
        if self.cycle == CYCLE_WEEKLY and not 0 <= self.due_day <= 6:
            raise ValueError(f"weekly due_day must be 0-6 (0=Sunday), got {self.due_day}")
        if self.cycle in DAY_OF_MONTH_CYCLES and not 1 <= self.due_day <= 31:
            raise ValueError(f"{self.cycle} due_day must be 1-31, got {self.due_day}")
        # Ordered set: keep first occurrence of each offset
        offsets = tuple(dict.fromkeys(int(o) for o in self.reminder_offsets))
        object.__setattr__(self, "reminder_offsets", offsets)
        if not isinstance(self.reminders_sent, ReminderLedger):
            object.__setattr__(self, "reminders_sent", ReminderLedger.from_document(self.reminders_sent))

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE


# ─── ORM conversion ───

def bill_state_from_model(bill) -> BillState:
    """Snapshot a ``RecurringBill`` row (owner must already be loaded)."""
    owner = None
    user = getattr(bill, "owner", None)
    if user is not None:
        owner = BillOwner(
            user_id=user.id,
            email=user.email,
            name=user.name,
            email_reminders_enabled=bool(getattr(user, "email_reminders_enabled", True)),
        )

    return BillState(
        id=bill.id,
        user_id=bill.user_id,
        name=bill.name,
        cycle=bill.bill_cycle,
        due_day=bill.due_day,
        start_date=bill.start_date,
        timezone=bill.timezone,
        custom_interval_days=bill.custom_interval_days,
        end_date=bill.end_date,
        reminder_offsets=tuple(bill.reminder_offsets or ()),
        status=bill.status,
        reminders_sent=ReminderLedger.from_document(bill.reminders_sent),
        marked_paid_until=bill.marked_paid_until,
        amount=bill.amount,
        currency=bill.currency,
        category=bill.category,
        notes=bill.notes or "",
        owner=owner,
    )


def apply_state_to_model(state: BillState, bill) -> None:
    """Copy the user-driven lifecycle fields of ``state`` onto a ``RecurringBill`` row.

    The ledger is owned by reminder passes (``SqlBillStore.save_ledger``) and
    is not touched here.
    """
    bill.status = state.status
    bill.marked_paid_until = state.marked_paid_until
