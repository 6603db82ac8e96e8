"""Recurring bill model: a user's periodic payment obligation."""
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.db.base import Base, TimestampMixin, UUIDMixin

BILL_CYCLES = ("weekly", "biweekly", "monthly", "quarterly", "yearly", "custom")
BILL_STATUSES = ("active", "paused", "deleted")
BILL_CATEGORIES = (
    "utilities", "subscriptions", "insurance", "rent", "loan",
    "credit_card", "phone", "internet", "other",
)

MAX_REMINDER_OFFSETS = 5
MAX_REMINDER_OFFSET_DAYS = 30


class RecurringBill(Base, UUIDMixin, TimestampMixin):
    """Schedule config, reminder config and the sent-reminder ledger for one bill.

    ``reminders_sent`` is stored as a JSON object keyed by local due date:
    ``{"2026-01-15": [3, 1], "2026-02-15": [3]}``.
    """

    __tablename__ = "recurring_bills"

    __table_args__ = (
        CheckConstraint("due_day BETWEEN 0 AND 31", name="ck_recurring_bills_due_day"),
        CheckConstraint(
            "(bill_cycle <> 'weekly' OR due_day BETWEEN 0 AND 6) AND "
            "(bill_cycle NOT IN ('monthly', 'quarterly', 'yearly') OR due_day BETWEEN 1 AND 31)",
            name="ck_recurring_bills_due_day_per_cycle",
        ),
        CheckConstraint(
            "custom_interval_days IS NULL OR custom_interval_days BETWEEN 1 AND 365",
            name="ck_recurring_bills_custom_interval",
        ),
        Index("ix_recurring_bills_user_status", "user_id", "status"),
        Index("ix_recurring_bills_status_start", "status", "start_date"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)  # variable-amount bills
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="INR")
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="other")

    bill_cycle: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    # monthly/quarterly/yearly: day of month 1-31; weekly: 0=Sunday .. 6=Saturday
    due_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    custom_interval_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="Asia/Kolkata")

    reminder_offsets: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=lambda: [3, 1])
    reminders_sent: Mapped[dict[str, list[int]]] = mapped_column(JSON, nullable=False, default=dict)
    marked_paid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active", index=True)
    is_auto_pay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    owner = relationship("User", lazy="selectin")

    @validates("reminder_offsets")
    def _validate_reminder_offsets(self, key, offsets):
        if not offsets or len(offsets) > MAX_REMINDER_OFFSETS:
            raise ValueError(f"reminder_offsets must have 1-{MAX_REMINDER_OFFSETS} values")
        if any(not isinstance(o, int) or o < 0 or o > MAX_REMINDER_OFFSET_DAYS for o in offsets):
            raise ValueError(f"reminder_offsets values must be between 0-{MAX_REMINDER_OFFSET_DAYS} days")
        return list(offsets)

    @validates("bill_cycle")
    def _validate_bill_cycle(self, key, cycle):
        if cycle not in BILL_CYCLES:
            raise ValueError(f"bill_cycle must be one of {', '.join(BILL_CYCLES)}")
        return cycle

    @validates("status")
    def _validate_status(self, key, status):
        if status not in BILL_STATUSES:
            raise ValueError(f"status must be one of {', '.join(BILL_STATUSES)}")
        return status

    @validates("category")
    def _validate_category(self, key, category):
        # Unknown categories are kept as "other" rather than rejected
        return category if category in BILL_CATEGORIES else "other"
