"""Bill Store: loads active bills as snapshots and writes the reminder ledger back."""
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from app.models.recurring_bill import RecurringBill
from app.reminders.bill import STATUS_ACTIVE, BillState, bill_state_from_model
from app.reminders.processor import MalformedBill

logger = logging.getLogger(__name__)


class BillNotFound(LookupError):
    pass


class SqlBillStore:
    """Synchronous SQLAlchemy implementation used by scheduler passes and Celery tasks.

    Every ``save_ledger`` commits on its own so a ledger write is durable
    before the pass moves on to the next bill.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_active_bills(self) -> list[BillState | MalformedBill]:
        rows = self.db.execute(
            select(RecurringBill)
            .where(RecurringBill.status == STATUS_ACTIVE)
            .options(selectinload(RecurringBill.owner))
        ).scalars().all()

        bills: list[BillState | MalformedBill] = []
        for row in rows:
            try:
                bills.append(bill_state_from_model(row))
            except (TypeError, ValueError) as exc:
                bills.append(MalformedBill(id=row.id, error=str(exc)))
        logger.debug("find_active_bills: %d bills", len(bills))
        return bills

    def get(self, bill_id) -> BillState | None:
        row = self.db.get(RecurringBill, bill_id)
        return bill_state_from_model(row) if row is not None else None

    def save_ledger(self, bill: BillState) -> None:
        """Persist ``bill.reminders_sent`` and nothing else.

        Status and ``marked_paid_until`` may have been changed by the user
        since the snapshot was loaded; the UPDATE leaves those columns alone.
        """
        try:
            result = self.db.execute(
                update(RecurringBill)
                .where(RecurringBill.id == bill.id)
                .values(reminders_sent=bill.reminders_sent.to_document())
            )
            if not result.rowcount:
                raise BillNotFound(f"Recurring bill {bill.id} not found")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
