"""Pydantic schemas for recurring bills."""
import uuid
from datetime import datetime

from pydantic import BaseModel


class UpcomingDueDate(BaseModel):
    due_date: datetime
    due_date_key: str
    days_until_due: int
    is_paid_this_cycle: bool


class UpcomingDueDatesResponse(BaseModel):
    bill_id: uuid.UUID
    name: str
    bill_cycle: str
    timezone: str
    status: str
    items: list[UpcomingDueDate]


class BillStatusOut(BaseModel):
    id: uuid.UUID
    status: str
    marked_paid_until: datetime | None

    model_config = {"from_attributes": True}
