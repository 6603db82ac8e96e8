"""Pydantic schemas for the reminder scheduler endpoints."""
from datetime import datetime

from pydantic import BaseModel


class PassStatsOut(BaseModel):
    processed: int
    sent: int
    skipped: int
    errors: int
    duration_ms: int

    model_config = {"from_attributes": True}


class MaintenanceStatsOut(BaseModel):
    pruned_bills: int
    deleted_notifications: int
    errors: int

    model_config = {"from_attributes": True}


class SchedulerStatusOut(BaseModel):
    running: bool
    interval_seconds: float
    maintenance_interval_seconds: float
    last_pass_at: datetime | None
    last_pass: PassStatsOut | None
    last_maintenance: MaintenanceStatsOut | None
    last_error: str | None
