"""Payment schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.payment import PaymentMethod


class PaymentAllocationInput(BaseModel):
    """Amount of a payment applied to one fee allocation."""

    fee_allocation_id: UUID
    amount: Decimal = Field(gt=0, decimal_places=2)


class PaymentCreate(BaseModel):
    """Schema for recording a payment."""

    family_id: UUID
    amount: Decimal = Field(gt=0, decimal_places=2, description="Payment amount")
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_date: date | None = None
    reference: str | None = Field(None, max_length=100)
    note: str | None = None
    allocations: list[PaymentAllocationInput] = []
    auto_allocate: bool = Field(
        default=False,
        description="Apply the payment to the oldest unpaid allocations",
    )


class PaymentAllocationResponse(BaseModel):
    id: UUID
    fee_allocation_id: UUID
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class ReceivedByInfo(BaseModel):
    """Info about user who received payment."""

    id: UUID
    name: str

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    id: UUID
    institute_id: UUID
    family_id: UUID
    amount: Decimal
    allocated_amount: Decimal
    payment_method: PaymentMethod
    payment_date: date
    reference: str | None
    note: str | None
    received_by_id: UUID | None
    received_by: ReceivedByInfo | None = None
    allocations: list[PaymentAllocationResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentListResponse(BaseModel):
    """Schema for paginated payment list."""

    items: list[PaymentResponse]
    total: int
    skip: int
    limit: int


class PaymentSummary(BaseModel):
    """Payment summary statistics."""

    total_payments: int
    total_amount: Decimal
    by_method: dict[str, Decimal]
