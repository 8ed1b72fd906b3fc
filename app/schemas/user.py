"""User schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.permissions import Role
from app.schemas.validators import Email


class UserCreate(BaseModel):
    """Schema for creating a new user."""

    email: Email
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=200)
    role: Role = Role.TEACHER
    institute_id: UUID | None = None
    family_id: UUID | None = None  # Required for parents
    student_id: UUID | None = None  # Required for student accounts


class UserUpdate(BaseModel):
    """Schema for updating a user."""

    email: Email | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    role: Role | None = None
    family_id: UUID | None = None
    student_id: UUID | None = None
    is_active: bool | None = None


class UserUpdateMe(BaseModel):
    """Schema for user updating their own profile."""

    email: Email | None = None
    name: str | None = Field(None, min_length=1, max_length=200)


class PasswordChange(BaseModel):
    """Schema for changing password."""

    current_password: str = Field(..., min_length=6)
    new_password: str = Field(..., min_length=6)


class UserResponse(BaseModel):
    """User response schema."""

    id: UUID
    email: str
    name: str
    role: Role
    institute_id: UUID | None
    family_id: UUID | None
    student_id: UUID | None
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    """Paginated list of users."""

    items: list[UserResponse]
    total: int
    skip: int
    limit: int
