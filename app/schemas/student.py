"""Student schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class StudentCreate(BaseModel):
    """Schema for creating a new student."""

    institute_id: UUID | None = None  # Defaults to the caller's institute
    family_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    grade: str | None = Field(None, max_length=50)
    date_of_birth: date | None = None
    enrollment_date: date | None = None
    student_code: str | None = Field(None, min_length=1, max_length=50)


class StudentUpdate(BaseModel):
    """Schema for updating a student."""

    family_id: UUID | None = None
    name: str | None = Field(None, min_length=1, max_length=200)
    grade: str | None = Field(None, max_length=50)
    date_of_birth: date | None = None
    enrollment_date: date | None = None
    student_code: str | None = Field(None, min_length=1, max_length=50)
    is_active: bool | None = None


class StudentFamily(BaseModel):
    """Nested family info for student response."""

    id: UUID
    name: str
    phone: str | None
    email: str | None

    model_config = {"from_attributes": True}


class StudentResponse(BaseModel):
    """Student response schema."""

    id: UUID
    institute_id: UUID
    family_id: UUID
    family: StudentFamily | None = None
    name: str
    grade: str | None
    date_of_birth: date | None
    enrollment_date: date
    student_code: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StudentStatistics(BaseModel):
    """Headcount figures for an institute."""

    total: int
    active: int
    inactive: int
    by_grade: dict[str, int]
    recent_enrollments: int
