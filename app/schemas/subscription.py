"""Student subscription schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class SubscriptionCreate(BaseModel):
    """Subscribe a student to exactly one course or service."""

    course_id: UUID | None = None
    service_id: UUID | None = None
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    start_date: date | None = None

    @model_validator(mode="after")
    def check_single_target(self) -> "SubscriptionCreate":
        if (self.course_id is None) == (self.service_id is None):
            raise ValueError("Provide exactly one of course_id or service_id")
        return self


class SubscriptionEnd(BaseModel):
    end_date: date | None = None  # Defaults to today


class SubscriptionResponse(BaseModel):
    """Subscription response schema."""

    id: UUID
    student_id: UUID
    course_id: UUID | None
    service_id: UUID | None
    discount_amount: Decimal
    start_date: date
    end_date: date | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
