"""Academic log and assignment routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.responses import envelope
from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.core.permissions import Role
from app.models.academic import AcademicLogType, AssignmentType
from app.models.user import User
from app.schemas.academic import (
    AcademicLogCreate,
    AcademicLogResponse,
    AcademicLogUpdate,
    AssignmentCreate,
    AssignmentResponse,
    AssignmentStatistics,
    AssignmentUpdate,
    SubmissionGrade,
    SubmissionResponse,
)
from app.schemas.common import Envelope, Page
from app.services import academic as academic_service
from app.services.academic import AcademicLogService, AssignmentService
from app.services.base import ErrorCode, PaginationOptions, ServiceError, ServiceFailure

logs_router = APIRouter(
    prefix="/academic-logs",
    tags=["Academic logs"],
    dependencies=[Depends(require_module("academics"))],
)
assignments_router = APIRouter(
    prefix="/assignments",
    tags=["Assignments"],
    dependencies=[Depends(require_module("academics"))],
)

AcademicReader = Annotated[User, Depends(require_permission("academics:read"))]
AcademicWriter = Annotated[User, Depends(require_permission("academics:write"))]


def ensure_author(current_user: User, teacher_id: UUID | None) -> None:
    """Teachers may only change what they wrote themselves."""
    if current_user.role == Role.TEACHER and teacher_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teachers can only change their own records",
        )


# ============== Academic logs ==============


def get_log_service(db, user: User, institute_id: UUID | None = None) -> AcademicLogService:
    return AcademicLogService(db, resolve_institute_id(user, institute_id))


@logs_router.get("", response_model=Envelope[Page[AcademicLogResponse]])
async def list_academic_logs(
    db: DbSession,
    current_user: AcademicReader,
    institute_id: UUID | None = Query(None, description="Filter by institute (superadmin)"),
    search: str | None = Query(None, description="Search title and content"),
    student_id: UUID | None = Query(None),
    teacher_id: UUID | None = Query(None),
    log_type: AcademicLogType | None = Query(None),
    subject: str | None = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    options = PaginationOptions(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        filters={
            "student_id": student_id,
            "teacher_id": teacher_id,
            "log_type": log_type,
            "subject": subject,
        },
    )
    result = await get_log_service(db, current_user, institute_id).find_many(options)
    return envelope(result, AcademicLogResponse)


@logs_router.post(
    "",
    response_model=Envelope[AcademicLogResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_academic_log(
    log_data: AcademicLogCreate,
    db: DbSession,
    current_user: AcademicWriter,
):
    """
    Write an academic log about a student.

    Teachers always write as themselves. Admins may name another teacher.
    """
    data = log_data.model_dump()
    if current_user.role == Role.TEACHER or data["teacher_id"] is None:
        data["teacher_id"] = current_user.id

    result = await get_log_service(db, current_user).create(data)
    return envelope(result, AcademicLogResponse)


@logs_router.get("/{log_id}", response_model=Envelope[AcademicLogResponse])
async def get_academic_log(
    log_id: UUID,
    db: DbSession,
    current_user: AcademicReader,
):
    result = await get_log_service(db, current_user).find_by_id(log_id)
    return envelope(result, AcademicLogResponse)


@logs_router.patch("/{log_id}", response_model=Envelope[AcademicLogResponse])
async def update_academic_log(
    log_id: UUID,
    log_data: AcademicLogUpdate,
    db: DbSession,
    current_user: AcademicWriter,
):
    service = get_log_service(db, current_user)
    record = (await service.find_by_id(log_id)).unwrap()
    ensure_author(current_user, record.teacher_id)

    result = await service.update(log_id, log_data)
    return envelope(result, AcademicLogResponse)


@logs_router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_academic_log(
    log_id: UUID,
    db: DbSession,
    current_user: AcademicWriter,
) -> None:
    service = get_log_service(db, current_user)
    record = (await service.find_by_id(log_id)).unwrap()
    ensure_author(current_user, record.teacher_id)

    result = await service.delete(log_id)
    if not result.success:
        raise ServiceFailure(result)


# ============== Assignments ==============


def get_assignment_service(db, user: User, institute_id: UUID | None = None) -> AssignmentService:
    return AssignmentService(db, resolve_institute_id(user, institute_id))


@assignments_router.get("", response_model=Envelope[Page[AssignmentResponse]])
async def list_assignments(
    db: DbSession,
    current_user: AcademicReader,
    institute_id: UUID | None = Query(None, description="Filter by institute (superadmin)"),
    search: str | None = Query(None),
    grade: str | None = Query(None),
    subject: str | None = Query(None),
    assignment_type: AssignmentType | None = Query(None),
    student_id: UUID | None = Query(None),
    mine: bool = Query(False, description="Only assignments set by the caller"),
    include_inactive: bool = Query(False),
    page: int = Query(1),
    limit: int = Query(10),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    options = PaginationOptions(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        filters={
            "grade": grade,
            "subject": subject,
            "assignment_type": assignment_type,
            "student_id": student_id,
            "teacher_id": current_user.id if mine else None,
            "include_inactive": include_inactive,
        },
    )
    result = await get_assignment_service(db, current_user, institute_id).find_many(options)
    return envelope(result, AssignmentResponse)


@assignments_router.get("/stats", response_model=Envelope[AssignmentStatistics])
async def assignment_statistics(
    db: DbSession,
    current_user: AcademicReader,
    institute_id: UUID | None = Query(None),
):
    """Assignment counts by type and submissions by status. Teachers see their own."""
    teacher_id = current_user.id if current_user.role == Role.TEACHER else None
    result = await get_assignment_service(db, current_user, institute_id).get_statistics(
        teacher_id
    )
    return envelope(result)


@assignments_router.post(
    "",
    response_model=Envelope[AssignmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_assignment(
    assignment_data: AssignmentCreate,
    db: DbSession,
    current_user: AcademicWriter,
):
    """Set an assignment for a grade or a single student."""
    data = assignment_data.model_dump()
    data["teacher_id"] = current_user.id

    result = await get_assignment_service(db, current_user).create(data)
    return envelope(result, AssignmentResponse)


@assignments_router.get("/{assignment_id}", response_model=Envelope[AssignmentResponse])
async def get_assignment(
    assignment_id: UUID,
    db: DbSession,
    current_user: AcademicReader,
):
    result = await get_assignment_service(db, current_user).find_by_id(assignment_id)
    return envelope(result, AssignmentResponse)


@assignments_router.patch("/{assignment_id}", response_model=Envelope[AssignmentResponse])
async def update_assignment(
    assignment_id: UUID,
    assignment_data: AssignmentUpdate,
    db: DbSession,
    current_user: AcademicWriter,
):
    service = get_assignment_service(db, current_user)
    record = (await service.find_by_id(assignment_id)).unwrap()
    ensure_author(current_user, record.teacher_id)

    result = await service.update(assignment_id, assignment_data)
    return envelope(result, AssignmentResponse)


@assignments_router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    assignment_id: UUID,
    db: DbSession,
    current_user: AcademicWriter,
) -> None:
    """Withdraw an assignment. Withdrawing it again is a no-op."""
    service = get_assignment_service(db, current_user)
    record = (await service.find_by_id(assignment_id)).unwrap()
    ensure_author(current_user, record.teacher_id)

    result = await service.delete(assignment_id)
    if not result.success and result.code != ErrorCode.ALREADY_INACTIVE.value:
        raise ServiceFailure(result)


# ============== Submissions ==============


@assignments_router.get(
    "/{assignment_id}/submissions",
    response_model=list[SubmissionResponse],
)
async def list_submissions(
    assignment_id: UUID,
    db: DbSession,
    current_user: AcademicReader,
) -> list[SubmissionResponse]:
    """Submissions handed in for an assignment, newest first."""
    assignment = (
        await get_assignment_service(db, current_user).find_by_id(assignment_id)
    ).unwrap()
    ensure_author(current_user, assignment.teacher_id)

    submissions = await academic_service.get_submissions(db, assignment_id=assignment.id)
    return [SubmissionResponse.model_validate(s) for s in submissions]


@assignments_router.patch("/submissions/{submission_id}", response_model=SubmissionResponse)
async def grade_submission(
    submission_id: UUID,
    grade_data: SubmissionGrade,
    db: DbSession,
    current_user: AcademicWriter,
) -> SubmissionResponse:
    submission = await academic_service.get_submission_by_id(
        db, submission_id, resolve_institute_id(current_user, None)
    )
    if submission is None:
        raise ServiceError(ErrorCode.RECORD_NOT_FOUND, "Submission not found")

    submission = await academic_service.grade_submission(db, submission, current_user, grade_data)
    return SubmissionResponse.model_validate(submission)
