"""In-app notification model.

One row per delivered reminder. ``idempotency_key`` is globally unique, so a
second insert for the same (type, bill, due date, offset) fails at the store
level and is treated as "already delivered".
"""
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from app.db.base import Base, TimestampMixin, UUIDMixin

NOTIFICATION_TYPES = ("bill_reminder", "bill_due_today", "bill_overdue", "system")
SOURCE_TYPES = ("recurring_bill", "system", "other")


class Notification(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "notifications"

    __table_args__ = (
        Index("ix_notifications_user_read_created", "user_id", "is_read", "created_at"),
        Index("ix_notifications_user_dismissed_created", "user_id", "is_dismissed", "created_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)

    source_type: Mapped[str] = mapped_column(String(50), nullable=False, default="other")
    source_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)  # bill name, amount, due date...

    action_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action_label: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_dismissed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dismissed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Format: {type}:{bill_id}:{due_date_key}:{offset}
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0-10, higher first

    channel_in_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    channel_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    @validates("type")
    def _validate_type(self, key, value):
        if value not in NOTIFICATION_TYPES:
            raise ValueError(f"type must be one of {', '.join(NOTIFICATION_TYPES)}")
        return value

    @validates("source_type")
    def _validate_source_type(self, key, value):
        if value not in SOURCE_TYPES:
            raise ValueError(f"source_type must be one of {', '.join(SOURCE_TYPES)}")
        return value
