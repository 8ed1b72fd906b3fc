"""Academic log and assignment services."""

import logging
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.permissions import Role
from app.models.academic import (
    AcademicLog,
    Assignment,
    AssignmentSubmission,
    SubmissionStatus,
)
from app.models.student import Student
from app.models.user import User
from app.schemas.academic import SubmissionCreate, SubmissionGrade
from app.services.base import (
    BaseService,
    ErrorCode,
    PaginationOptions,
    ServiceError,
    parse_id,
    service_operation,
)

logger = logging.getLogger(__name__)

AUTHOR_ROLES = (Role.TEACHER, Role.ADMIN)


async def _check_student(db: AsyncSession, student_id: UUID | str, institute_id: UUID) -> Student:
    student = (
        await db.execute(
            select(Student).where(
                Student.id == parse_id(student_id),
                Student.institute_id == institute_id,
            )
        )
    ).scalar_one_or_none()
    if student is None:
        raise ServiceError(
            ErrorCode.STUDENT_NOT_FOUND,
            "Student not found",
            {"student_id": str(student_id)},
        )
    return student


def _drop_cleared(data: dict[str, Any], names: tuple[str, ...]) -> dict[str, Any]:
    for name in names:
        if name in data and data[name] is None:
            data.pop(name)
    return data


class AcademicLogService(BaseService[AcademicLog]):
    """
    Academic logs written by teachers about students.

    find_many filters: student_id, teacher_id, log_type, subject,
    student_ids (any of) and public_only (hide private logs).
    """

    model = AcademicLog
    model_name = "Academic log"
    required_fields = ["title", "content", "student_id", "teacher_id"]
    search_fields = ["title", "content"]

    def load_options(self) -> list:
        return [selectinload(AcademicLog.student), selectinload(AcademicLog.teacher)]

    async def _check_author(self, teacher_id: UUID | str, institute_id: UUID) -> UUID:
        author = (
            await self.db.execute(
                select(User).where(
                    User.id == parse_id(teacher_id),
                    User.institute_id == institute_id,
                )
            )
        ).scalar_one_or_none()
        if author is None or author.role not in AUTHOR_ROLES or not author.is_active:
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                "Author must be an active teacher or admin of this institute",
                {"teacher_id": str(teacher_id)},
            )
        return author.id

    async def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        student = await _check_student(self.db, data["student_id"], data["institute_id"])
        data["student_id"] = student.id
        data["teacher_id"] = await self._check_author(data["teacher_id"], data["institute_id"])
        return data

    async def before_update(self, record: AcademicLog, data: dict[str, Any]) -> dict[str, Any]:
        return _drop_cleared(data, ("log_type", "is_private"))

    def apply_filters(self, query: Select, options: PaginationOptions) -> Select:
        query = super().apply_filters(query, options)
        filters = options.filters

        for name in ("student_id", "teacher_id", "log_type", "subject"):
            if filters.get(name):
                query = query.where(getattr(AcademicLog, name) == filters[name])
        if filters.get("student_ids") is not None:
            query = query.where(AcademicLog.student_id.in_(filters["student_ids"]))
        if filters.get("public_only"):
            query = query.where(AcademicLog.is_private.is_(False))
        return query


class AssignmentService(BaseService[Assignment]):
    """
    Assignments set for a grade or a single student.

    find_many filters: grade, subject, assignment_type, teacher_id,
    student_id, is_active / include_inactive and `audience`, a list of
    students whose assignments are wanted.
    """

    model = Assignment
    model_name = "Assignment"
    required_fields = ["title", "description", "subject", "teacher_id"]
    search_fields = ["title", "description"]

    def load_options(self) -> list:
        return [
            selectinload(Assignment.teacher),
            selectinload(Assignment.student),
            selectinload(Assignment.submissions),
        ]

    async def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        if not data.get("grade") and not data.get("student_id"):
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                "An assignment needs a grade or a student",
                {"missing_fields": ["grade", "student_id"]},
            )
        if data.get("student_id"):
            student = await _check_student(self.db, data["student_id"], data["institute_id"])
            data["student_id"] = student.id
        return data

    async def before_update(self, record: Assignment, data: dict[str, Any]) -> dict[str, Any]:
        return _drop_cleared(data, ("assignment_type", "priority", "is_active"))

    def apply_filters(self, query: Select, options: PaginationOptions) -> Select:
        query = super().apply_filters(query, options)
        filters = options.filters

        for name in ("grade", "subject", "assignment_type", "teacher_id", "student_id"):
            if filters.get(name):
                query = query.where(getattr(Assignment, name) == filters[name])

        audience = filters.get("audience")
        if audience is not None:
            grades = {s.grade for s in audience if s.grade}
            query = query.where(
                or_(
                    Assignment.grade.in_(grades),
                    Assignment.student_id.in_([s.id for s in audience]),
                )
            )

        if filters.get("is_active") is not None:
            query = query.where(Assignment.is_active == filters["is_active"])
        elif not filters.get("include_inactive"):
            query = query.where(Assignment.is_active.is_(True))
        return query

    @service_operation("get statistics")
    async def get_statistics(self, teacher_id: UUID | None = None) -> dict[str, Any]:
        assignments = self._scope(
            select(Assignment.assignment_type, Assignment.is_active, func.count(Assignment.id))
        )
        submissions = select(AssignmentSubmission.status, func.count(AssignmentSubmission.id))
        if self.institute_id is not None:
            submissions = submissions.where(AssignmentSubmission.institute_id == self.institute_id)
        if teacher_id is not None:
            assignments = assignments.where(Assignment.teacher_id == teacher_id)
            submissions = submissions.join(Assignment).where(Assignment.teacher_id == teacher_id)

        total = active = 0
        by_type: dict[str, int] = {}
        rows = await self.db.execute(
            assignments.group_by(Assignment.assignment_type, Assignment.is_active)
        )
        for assignment_type, is_active, count in rows:
            total += count
            if is_active:
                active += count
                by_type[assignment_type] = by_type.get(assignment_type, 0) + count

        by_status = {s.value: 0 for s in SubmissionStatus}
        rows = await self.db.execute(submissions.group_by(AssignmentSubmission.status))
        for status, count in rows:
            by_status[status] = count

        return {"total": total, "active": active, "by_type": by_type, "submissions": by_status}


# ============== Submissions ==============

SUBMISSION_OPTIONS = (
    selectinload(AssignmentSubmission.assignment),
    selectinload(AssignmentSubmission.student),
)


async def get_submission_by_id(
    db: AsyncSession,
    submission_id: UUID,
    institute_id: UUID | None = None,
) -> AssignmentSubmission | None:
    query = select(AssignmentSubmission).where(AssignmentSubmission.id == submission_id)
    if institute_id:
        query = query.where(AssignmentSubmission.institute_id == institute_id)
    query = query.options(*SUBMISSION_OPTIONS).execution_options(populate_existing=True)
    return (await db.execute(query)).scalar_one_or_none()


async def get_submissions(
    db: AsyncSession,
    institute_id: UUID | None = None,
    assignment_id: UUID | None = None,
    student_ids: list[UUID] | None = None,
) -> list[AssignmentSubmission]:
    """List submissions, newest first."""
    query = select(AssignmentSubmission)

    if institute_id:
        query = query.where(AssignmentSubmission.institute_id == institute_id)
    if assignment_id:
        query = query.where(AssignmentSubmission.assignment_id == assignment_id)
    if student_ids is not None:
        query = query.where(AssignmentSubmission.student_id.in_(student_ids))

    query = query.options(*SUBMISSION_OPTIONS).order_by(AssignmentSubmission.submitted_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def submit_assignment(
    db: AsyncSession,
    assignment_id: UUID,
    student: Student,
    submission_data: SubmissionCreate,
    today: date | None = None,
) -> AssignmentSubmission:
    """
    Hand in an assignment for a student.

    The assignment must be active and aimed at the student's grade or at
    the student directly. A submission after the due date is marked LATE.
    """
    today = today or date.today()
    assignment = (
        await db.execute(
            select(Assignment).where(
                Assignment.id == assignment_id,
                Assignment.institute_id == student.institute_id,
            )
        )
    ).scalar_one_or_none()
    if assignment is None or not assignment.is_active:
        raise ServiceError(
            ErrorCode.RECORD_NOT_FOUND,
            "Assignment not found or inactive",
            {"assignment_id": str(assignment_id)},
        )
    if not assignment.is_for(student):
        raise ServiceError(
            ErrorCode.ACCESS_DENIED,
            "Not eligible for this assignment",
            {"assignment_id": str(assignment_id)},
        )

    existing = await db.execute(
        select(AssignmentSubmission.id).where(
            AssignmentSubmission.assignment_id == assignment.id,
            AssignmentSubmission.student_id == student.id,
        )
    )
    if existing.first() is not None:
        raise ServiceError(
            ErrorCode.ALREADY_SUBMITTED,
            "Assignment already submitted",
            {"assignment_id": str(assignment_id)},
        )

    late = assignment.due_date is not None and today > assignment.due_date
    submission = AssignmentSubmission(
        institute_id=assignment.institute_id,
        assignment_id=assignment.id,
        student_id=student.id,
        content=submission_data.content,
        status=SubmissionStatus.LATE if late else SubmissionStatus.SUBMITTED,
        submitted_at=datetime.now(timezone.utc),
    )
    db.add(submission)
    await db.commit()
    logger.info("Student %s submitted assignment %s", student.id, assignment.id)

    return await get_submission_by_id(db, submission.id)


async def grade_submission(
    db: AsyncSession,
    submission: AssignmentSubmission,
    grader: User,
    grade_data: SubmissionGrade,
) -> AssignmentSubmission:
    """Record a score and feedback. Teachers may only grade their own assignments."""
    if grader.role == Role.TEACHER and submission.assignment.teacher_id != grader.id:
        raise ServiceError(
            ErrorCode.ACCESS_DENIED,
            "You can only grade submissions for your assignments",
            {"submission_id": str(submission.id)},
        )

    submission.score = grade_data.score
    submission.feedback = grade_data.feedback
    submission.status = SubmissionStatus.GRADED
    submission.graded_at = datetime.now(timezone.utc)
    submission.graded_by_id = grader.id

    await db.commit()
    return await get_submission_by_id(db, submission.id)
