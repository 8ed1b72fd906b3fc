"""Family schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.validators import Email, PhoneNumber


class FamilyCreate(BaseModel):
    """Schema for creating a new family."""

    institute_id: UUID | None = None  # Defaults to the caller's institute
    name: str = Field(..., min_length=1, max_length=255)
    address: str | None = Field(None, max_length=500)
    phone: PhoneNumber | None = None
    email: Email | None = None
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class FamilyUpdate(BaseModel):
    """Schema for updating a family."""

    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = Field(None, max_length=500)
    phone: PhoneNumber | None = None
    email: Email | None = None
    discount_amount: Decimal | None = Field(None, ge=0, decimal_places=2)
    is_active: bool | None = None


class FamilyStudent(BaseModel):
    """Student as listed under a family."""

    id: UUID
    name: str
    grade: str | None
    enrollment_date: date
    is_active: bool

    model_config = {"from_attributes": True}


class FamilyResponse(BaseModel):
    """Family response schema."""

    id: UUID
    institute_id: UUID
    name: str
    address: str | None
    phone: str | None
    email: str | None
    discount_amount: Decimal
    is_active: bool
    students: list[FamilyStudent] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
