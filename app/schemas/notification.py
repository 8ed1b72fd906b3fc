"""Fee reminder schemas."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.services.notification import ReminderType


class FeeReminderRequest(BaseModel):
    """Send fee reminders of one kind."""

    institute_id: UUID | None = None
    reminder_type: ReminderType = ReminderType.OVERDUE
    today: date | None = None  # Reference date, defaults to today


class ReminderError(BaseModel):
    fee_allocation_id: UUID
    error: str


class FeeReminderResult(BaseModel):
    """Outcome of a reminder run."""

    reminder_type: ReminderType
    total_allocations: int
    sent: int
    failed: int
    errors: list[ReminderError]
    duration_ms: float


class OverdueSummary(BaseModel):
    total_overdue: int
    total_amount: Decimal
    affected_families: int
    oldest_due_date: date | None


class BillNotificationRequest(BaseModel):
    """Announce one month's bills to families."""

    institute_id: UUID | None = None
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)


class BillNotificationResult(BaseModel):
    sent: int
