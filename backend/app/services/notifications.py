"""Notification sink: create-if-absent in-app notifications keyed by idempotency key."""
import logging
import uuid
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.notification import Notification
from app.reminders.processor import CreateResult, NotificationPayload

logger = logging.getLogger(__name__)


class SqlNotificationSink:
    def __init__(self, db: Session):
        self.db = db

    def create_if_absent(self, idempotency_key: str, payload: NotificationPayload) -> CreateResult:
        """Insert the notification unless ``idempotency_key`` already exists.

        The unique index on ``idempotency_key`` is the race-safety backstop:
        a losing concurrent insert hits IntegrityError inside a SAVEPOINT and
        gets the existing row back instead of an error.
        """
        notification = Notification(
            idempotency_key=idempotency_key,
            user_id=payload.user_id,
            type=payload.type,
            title=payload.title,
            message=payload.message,
            source_type=payload.source_type,
            source_id=payload.source_id,
            details=payload.details,
            action_url=payload.action_url,
            action_label=payload.action_label,
            priority=payload.priority,
            channel_in_app=True,
            channel_email=False,
            expires_at=payload.expires_at,
        )
        try:
            try:
                with self.db.begin_nested():
                    self.db.add(notification)
            except IntegrityError:
                existing = self.db.execute(
                    select(Notification).where(Notification.idempotency_key == idempotency_key)
                ).scalars().first()
                if existing is None:
                    raise
                self.db.commit()
                return CreateResult(notification_id=existing.id, was_created=False)

            self.db.commit()
            return CreateResult(notification_id=notification.id, was_created=True)
        except Exception:
            self.db.rollback()
            raise

    def mark_email_sent(self, notification_id: uuid.UUID, sent_at: datetime) -> None:
        try:
            self.db.execute(
                update(Notification)
                .where(Notification.id == notification_id)
                .values(channel_email=True, email_sent_at=sent_at)
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def delete_dismissed_before(self, cutoff: datetime) -> int:
        """Delete dismissed notifications created before ``cutoff``. Returns the count."""
        try:
            result = self.db.execute(
                delete(Notification).where(
                    Notification.is_dismissed.is_(True),
                    Notification.created_at < cutoff,
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        deleted = result.rowcount or 0
        logger.info("Cleaned up %d old dismissed notifications", deleted)
        return deleted
