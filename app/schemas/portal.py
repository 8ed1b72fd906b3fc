"""Portal schemas for parents, students and teachers."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from app.schemas.academic import AcademicLogResponse, AssignmentResponse, SubmissionResponse
from app.schemas.fee import FeeAllocationResponse
from app.schemas.payment import PaymentResponse


class PortalSubscription(BaseModel):
    """Active course or service with its monthly price."""

    id: UUID
    kind: str
    name: str
    monthly_amount: Decimal
    discount_amount: Decimal
    start_date: date


class PortalStudent(BaseModel):
    id: UUID
    name: str
    grade: str | None
    student_code: str | None
    enrollment_date: date
    is_active: bool
    subscriptions: list[PortalSubscription]
    monthly_fee: Decimal


class ParentOverview(BaseModel):
    """Everything a parent sees on their dashboard."""

    family_id: UUID
    family_name: str
    children: list[PortalStudent]
    outstanding_allocations: list[FeeAllocationResponse]
    total_outstanding: Decimal
    recent_payments: list[PaymentResponse]
    academic_logs: list[AcademicLogResponse] = []


class PortalAssignment(BaseModel):
    """Assignment with the student's own submission, if any."""

    assignment: AssignmentResponse
    submission: SubmissionResponse | None = None


class StudentOverview(BaseModel):
    """A student's own profile and fees."""

    student: PortalStudent
    family_name: str
    allocations: list[FeeAllocationResponse]
    total_outstanding: Decimal
    assignments: list[PortalAssignment] = []
    academic_logs: list[AcademicLogResponse] = []


class TeacherCourseStudent(BaseModel):
    id: UUID
    name: str
    grade: str | None


class TeacherCourse(BaseModel):
    id: UUID
    name: str
    grade: str | None
    capacity: int | None
    enrolled: int
    students: list[TeacherCourseStudent]


class TeacherOverview(BaseModel):
    """Courses a teacher runs and who is enrolled."""

    teacher_id: UUID
    teacher_name: str
    courses: list[TeacherCourse]
    total_students: int
    active_assignments: int = 0
    ungraded_submissions: int = 0
