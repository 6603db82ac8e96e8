"""Recurring bill API endpoints."""
import logging
import uuid
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.models.recurring_bill import RecurringBill
from app.reminders.bill import STATUS_DELETED, apply_state_to_model, bill_state_from_model
from app.reminders.due_dates import as_aware, date_key, local_date, resolve_timezone, upcoming_due_dates
from app.reminders.lifecycle import InvalidTransition, mark_paid, pause, resume, soft_delete
from app.schemas.bill import BillStatusOut, UpcomingDueDate, UpcomingDueDatesResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── GET /bills/{bill_id}/upcoming ───

@router.get(
    "/{bill_id}/upcoming",
    response_model=UpcomingDueDatesResponse,
    summary="Preview the next due dates of a recurring bill",
)
async def get_upcoming_due_dates(
    bill_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    count: int = Query(default=3, ge=1, le=12, description="Number of occurrences to return"),
):
    bill = await db.get(RecurringBill, bill_id)
    if bill is None or bill.status == STATUS_DELETED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bill not found.")

    state = bill_state_from_model(bill)
    tz = resolve_timezone(state.timezone)
    now = datetime.now(timezone.utc)
    today = local_date(now, tz)

    items = []
    for due in upcoming_due_dates(state, count, now):
        items.append(
            UpcomingDueDate(
                due_date=due,
                due_date_key=date_key(due, tz),
                days_until_due=(local_date(due, tz) - today).days,
                is_paid_this_cycle=state.marked_paid_until is not None and as_aware(state.marked_paid_until) > due,
            )
        )

    return UpcomingDueDatesResponse(
        bill_id=state.id,
        name=state.name,
        bill_cycle=state.cycle,
        timezone=str(tz),
        status=state.status,
        items=items,
    )


# ─── Lifecycle actions ───

async def _apply_transition(db: AsyncSession, bill_id: uuid.UUID, transition) -> RecurringBill:
    bill = await db.get(RecurringBill, bill_id)
    if bill is None or bill.status == STATUS_DELETED:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bill not found.")

    try:
        new_state = transition(bill_state_from_model(bill))
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    apply_state_to_model(new_state, bill)
    await db.commit()
    logger.info("Bill %s: %s -> status=%s", bill_id, transition.__name__, new_state.status)
    return bill


@router.post("/{bill_id}/pause", response_model=BillStatusOut, summary="Pause reminders for a bill")
async def pause_bill(bill_id: uuid.UUID, db: Annotated[AsyncSession, Depends(get_session)]):
    return await _apply_transition(db, bill_id, pause)


@router.post("/{bill_id}/resume", response_model=BillStatusOut, summary="Resume reminders for a paused bill")
async def resume_bill(bill_id: uuid.UUID, db: Annotated[AsyncSession, Depends(get_session)]):
    return await _apply_transition(db, bill_id, resume)


@router.post(
    "/{bill_id}/mark-paid",
    response_model=BillStatusOut,
    summary="Suppress reminders for the current cycle",
)
async def mark_bill_paid(bill_id: uuid.UUID, db: Annotated[AsyncSession, Depends(get_session)]):
    def mark_paid_now(state):
        return mark_paid(state, datetime.now(timezone.utc))

    return await _apply_transition(db, bill_id, mark_paid_now)


@router.delete("/{bill_id}", response_model=BillStatusOut, summary="Soft-delete a bill")
async def delete_bill(bill_id: uuid.UUID, db: Annotated[AsyncSession, Depends(get_session)]):
    return await _apply_transition(db, bill_id, soft_delete)
