"""Institute schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.validators import Email, PhoneNumber


class InstituteCreate(BaseModel):
    """Schema for creating a new institute."""

    name: str = Field(..., min_length=1, max_length=255)
    address: str | None = Field(None, max_length=500)
    phone: PhoneNumber | None = None
    email: Email | None = None


class InstituteUpdate(BaseModel):
    """Schema for updating an institute."""

    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = Field(None, max_length=500)
    phone: PhoneNumber | None = None
    email: Email | None = None
    is_active: bool | None = None


class InstituteResponse(BaseModel):
    """Institute response schema."""

    id: UUID
    name: str
    address: str | None
    phone: str | None
    email: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InstituteListResponse(BaseModel):
    """Paginated list of institutes."""

    items: list[InstituteResponse]
    total: int
    skip: int
    limit: int
