"""Portal routes for parents, students and teachers."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.core.deps import DbSession, require_module, require_permission
from app.models.user import User
from app.schemas.academic import SubmissionCreate, SubmissionResponse
from app.schemas.portal import ParentOverview, StudentOverview, TeacherOverview
from app.services import academic as academic_service
from app.services import portal as portal_service

router = APIRouter(
    prefix="/portal",
    tags=["Portal"],
    dependencies=[Depends(require_module("portals"))],
)


@router.get("/parent", response_model=ParentOverview)
async def parent_overview(
    db: DbSession,
    current_user: Annotated[User, Depends(require_permission("portal:parent"))],
) -> ParentOverview:
    """Children, outstanding fees and recent payments of the parent's family."""
    overview = await portal_service.get_parent_overview(db, current_user)
    return ParentOverview.model_validate(overview)


@router.get("/student", response_model=StudentOverview)
async def student_overview(
    db: DbSession,
    current_user: Annotated[User, Depends(require_permission("portal:student"))],
) -> StudentOverview:
    overview = await portal_service.get_student_overview(db, current_user)
    return StudentOverview.model_validate(overview)


@router.post(
    "/student/assignments/{assignment_id}/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_module("academics"))],
)
async def submit_assignment(
    assignment_id: UUID,
    submission_data: SubmissionCreate,
    db: DbSession,
    current_user: Annotated[User, Depends(require_permission("portal:student"))],
) -> SubmissionResponse:
    """Hand in an assignment. Work handed in after the due date is marked late."""
    student = await portal_service.get_linked_student(db, current_user)
    submission = await academic_service.submit_assignment(
        db, assignment_id, student, submission_data
    )
    return SubmissionResponse.model_validate(submission)


@router.get("/teacher", response_model=TeacherOverview)
async def teacher_overview(
    db: DbSession,
    current_user: Annotated[User, Depends(require_permission("portal:teacher"))],
) -> TeacherOverview:
    """Courses taught with their currently enrolled students."""
    overview = await portal_service.get_teacher_overview(db, current_user)
    return TeacherOverview.model_validate(overview)
