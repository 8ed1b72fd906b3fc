"""Academic log, assignment and submission schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.academic import (
    AcademicLogType,
    AssignmentPriority,
    AssignmentType,
    SubmissionStatus,
)


class PersonRef(BaseModel):
    """Name tag for a related student or teacher."""

    id: UUID
    name: str

    model_config = {"from_attributes": True}


class StudentRef(PersonRef):
    grade: str | None


# ============== Academic logs ==============


class AcademicLogCreate(BaseModel):
    """Schema for writing a new academic log."""

    institute_id: UUID | None = None
    student_id: UUID
    teacher_id: UUID | None = None  # Defaults to the author
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    log_type: AcademicLogType = AcademicLogType.PROGRESS
    subject: str | None = Field(None, max_length=100)
    is_private: bool = False


class AcademicLogUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)
    log_type: AcademicLogType | None = None
    subject: str | None = Field(None, max_length=100)
    is_private: bool | None = None


class AcademicLogResponse(BaseModel):
    """Academic log response schema."""

    id: UUID
    institute_id: UUID
    student_id: UUID
    student: StudentRef | None = None
    teacher_id: UUID | None
    teacher: PersonRef | None = None
    title: str
    content: str
    log_type: AcademicLogType
    subject: str | None
    is_private: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ============== Assignments ==============


class AssignmentCreate(BaseModel):
    """
    Schema for setting an assignment.

    Either `grade` (every student of that grade) or `student_id` (one
    student) must be given.
    """

    institute_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1, max_length=100)
    assignment_type: AssignmentType = AssignmentType.HOMEWORK
    priority: AssignmentPriority = AssignmentPriority.MEDIUM
    due_date: date | None = None
    grade: str | None = Field(None, max_length=50)
    student_id: UUID | None = None


class AssignmentUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    subject: str | None = Field(None, min_length=1, max_length=100)
    assignment_type: AssignmentType | None = None
    priority: AssignmentPriority | None = None
    due_date: date | None = None
    is_active: bool | None = None


class AssignmentResponse(BaseModel):
    """Assignment response schema."""

    id: UUID
    institute_id: UUID
    teacher_id: UUID | None
    teacher: PersonRef | None = None
    title: str
    description: str
    subject: str
    assignment_type: AssignmentType
    priority: AssignmentPriority
    due_date: date | None
    grade: str | None
    student_id: UUID | None
    student: StudentRef | None = None
    is_active: bool
    submission_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AssignmentStatistics(BaseModel):
    total: int
    active: int
    by_type: dict[str, int]
    submissions: dict[str, int]


# ============== Submissions ==============


class SubmissionCreate(BaseModel):
    content: str | None = None


class SubmissionGrade(BaseModel):
    """Teacher's review of a submission."""

    score: str = Field(..., min_length=1, max_length=20)
    feedback: str | None = None


class SubmissionResponse(BaseModel):
    """Submission response schema."""

    id: UUID
    assignment_id: UUID
    student_id: UUID
    student: StudentRef | None = None
    content: str | None
    status: SubmissionStatus
    submitted_at: datetime
    score: str | None
    feedback: str | None
    graded_at: datetime | None
    graded_by_id: UUID | None

    model_config = {"from_attributes": True}
