"""Fee calculation and allocation schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.course import BillingCycle
from app.models.fee import AllocationStatus


class FeeItem(BaseModel):
    """One subscribed course or service in a fee breakdown."""

    subscription_id: UUID
    kind: str  # "course" or "service"
    name: str
    amount: Decimal
    billing_cycle: BillingCycle
    monthly_amount: Decimal
    discount_amount: Decimal


class StudentFeeBreakdown(BaseModel):
    """Monthly fee for a single student."""

    student_id: UUID
    student_name: str
    items: list[FeeItem]
    gross_amount: Decimal
    item_discount: Decimal
    family_discount: Decimal
    total_discount: Decimal
    net_amount: Decimal


class FamilyFeeSummary(BaseModel):
    """Monthly fees for every active student of a family."""

    family_id: UUID
    family_name: str
    family_discount: Decimal
    students: list[StudentFeeBreakdown]
    gross_amount: Decimal
    total_discount: Decimal
    net_amount: Decimal


class GenerateAllocationsRequest(BaseModel):
    """Create or refresh fee allocations for one month."""

    institute_id: UUID | None = None
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    student_ids: list[UUID] | None = None


class GenerateAllocationsResult(BaseModel):
    month: int
    year: int
    created: int
    updated: int
    skipped: int


class MarkOverdueResult(BaseModel):
    updated: int


class FeeAllocationResponse(BaseModel):
    """Fee allocation response schema."""

    id: UUID
    institute_id: UUID
    student_id: UUID
    month: date
    year: int
    gross_amount: Decimal
    discount_amount: Decimal
    net_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: AllocationStatus
    due_date: date | None
    paid_date: date | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeeAllocationListResponse(BaseModel):
    """Paginated list of fee allocations."""

    items: list[FeeAllocationResponse]
    total: int
    skip: int
    limit: int
