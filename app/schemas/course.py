"""Course, service and fee structure schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.course import BillingCycle


class FeeStructureInput(BaseModel):
    """Price attached to a course or service."""

    amount: Decimal = Field(..., ge=0, decimal_places=2)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY


class FeeStructureResponse(BaseModel):
    id: UUID
    amount: Decimal
    billing_cycle: BillingCycle

    model_config = {"from_attributes": True}


class CourseCreate(BaseModel):
    """Schema for creating a new course."""

    institute_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    grade: str | None = Field(None, max_length=50)
    capacity: int | None = Field(None, ge=1)
    teacher_id: UUID | None = None
    fee: FeeStructureInput | None = None


class CourseUpdate(BaseModel):
    """Schema for updating a course."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    grade: str | None = Field(None, max_length=50)
    capacity: int | None = Field(None, ge=1)
    teacher_id: UUID | None = None
    is_active: bool | None = None
    fee: FeeStructureInput | None = None


class CourseResponse(BaseModel):
    """Course response schema."""

    id: UUID
    institute_id: UUID
    name: str
    description: str | None
    grade: str | None
    capacity: int | None
    teacher_id: UUID | None
    is_active: bool
    fee_structure: FeeStructureResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OfferingCreate(BaseModel):
    """Schema for creating a service such as transport or meals."""

    institute_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    fee: FeeStructureInput | None = None


class OfferingUpdate(BaseModel):
    """Schema for updating a service."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    is_active: bool | None = None
    fee: FeeStructureInput | None = None


class OfferingResponse(BaseModel):
    """Service response schema."""

    id: UUID
    institute_id: UUID
    name: str
    description: str | None
    is_active: bool
    fee_structure: FeeStructureResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
