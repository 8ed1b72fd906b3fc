"""Student routes."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.responses import envelope
from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.models.user import User
from app.schemas.common import Envelope, Page
from app.schemas.fee import StudentFeeBreakdown
from app.schemas.student import (
    StudentCreate,
    StudentResponse,
    StudentStatistics,
    StudentUpdate,
)
from app.schemas.subscription import SubscriptionCreate, SubscriptionEnd, SubscriptionResponse
from app.services import fee as fee_service
from app.services import subscription as subscription_service
from app.services.base import ErrorCode, PaginationOptions, ServiceError, ServiceFailure
from app.services.student import StudentService

router = APIRouter(
    prefix="/students",
    tags=["Students"],
    dependencies=[Depends(require_module("student-management"))],
)

StudentReader = Annotated[User, Depends(require_permission("students:read"))]
StudentWriter = Annotated[User, Depends(require_permission("students:write"))]


def get_service(db, user: User, institute_id: UUID | None = None) -> StudentService:
    return StudentService(db, resolve_institute_id(user, institute_id))


# ============== Endpoints ==============


@router.get("", response_model=Envelope[Page[StudentResponse]])
async def list_students(
    db: DbSession,
    current_user: StudentReader,
    institute_id: UUID | None = Query(None, description="Filter by institute (superadmin)"),
    search: str | None = Query(None, description="Search by name or student code"),
    grade: str | None = Query(None),
    family_id: UUID | None = Query(None),
    is_active: bool | None = Query(None, description="Filter by active status"),
    include_inactive: bool = Query(False, description="Include deactivated students"),
    enrolled_from: date | None = Query(None),
    enrolled_to: date | None = Query(None),
    page: int = Query(1),
    limit: int = Query(10),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
):
    """
    List students.

    Page and limit are clamped to page >= 1 and 1 <= limit <= 100. Inactive
    students are hidden unless `include_inactive` or `is_active` is given.
    """
    options = PaginationOptions(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        filters={
            "grade": grade,
            "family_id": family_id,
            "is_active": is_active,
            "include_inactive": include_inactive,
            "enrolled_from": enrolled_from,
            "enrolled_to": enrolled_to,
        },
    )
    result = await get_service(db, current_user, institute_id).find_many(options)
    return envelope(result, StudentResponse)


@router.get("/stats", response_model=Envelope[StudentStatistics])
async def student_statistics(
    db: DbSession,
    current_user: StudentReader,
    institute_id: UUID | None = Query(None),
):
    """Headcount totals, by grade and recent enrolments."""
    result = await get_service(db, current_user, institute_id).get_statistics()
    return envelope(result)


@router.post("", response_model=Envelope[StudentResponse], status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    db: DbSession,
    current_user: StudentWriter,
):
    """
    Create a new student.

    The family must exist in the same institute and the student code, when
    given, must be unique within it.
    """
    result = await get_service(db, current_user).create(student_data)
    return envelope(result, StudentResponse)


@router.get("/{student_id}", response_model=Envelope[StudentResponse])
async def get_student(
    student_id: UUID,
    db: DbSession,
    current_user: StudentReader,
):
    result = await get_service(db, current_user).find_by_id(student_id)
    return envelope(result, StudentResponse)


@router.patch("/{student_id}", response_model=Envelope[StudentResponse])
async def update_student(
    student_id: UUID,
    student_data: StudentUpdate,
    db: DbSession,
    current_user: StudentWriter,
):
    result = await get_service(db, current_user).update(student_id, student_data)
    return envelope(result, StudentResponse)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: UUID,
    db: DbSession,
    current_user: StudentWriter,
) -> None:
    """Deactivate a student. Deleting an inactive student is a no-op."""
    result = await get_service(db, current_user).delete(student_id)
    if not result.success and result.code != ErrorCode.ALREADY_INACTIVE.value:
        raise ServiceFailure(result)


@router.get(
    "/{student_id}/fees",
    response_model=StudentFeeBreakdown,
    dependencies=[Depends(require_module("fee-management"))],
)
async def get_student_fees(
    student_id: UUID,
    db: DbSession,
    current_user: Annotated[User, Depends(require_permission("fees:read"))],
) -> StudentFeeBreakdown:
    """Monthly fee breakdown of a student."""
    breakdown = await fee_service.calculate_student_monthly_fee(
        db, student_id, resolve_institute_id(current_user, None)
    )
    return StudentFeeBreakdown.model_validate(breakdown)


# ============== Subscriptions ==============


@router.get("/{student_id}/subscriptions", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    student_id: UUID,
    db: DbSession,
    current_user: StudentReader,
    active_only: bool = Query(False, description="Only subscriptions without an end date"),
) -> list[SubscriptionResponse]:
    student = (await get_service(db, current_user).find_by_id(student_id)).unwrap()
    subscriptions = await subscription_service.get_student_subscriptions(
        db, student.id, active_only=active_only
    )
    return [SubscriptionResponse.model_validate(s) for s in subscriptions]


@router.post(
    "/{student_id}/subscriptions",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    student_id: UUID,
    subscription_data: SubscriptionCreate,
    db: DbSession,
    current_user: StudentWriter,
) -> SubscriptionResponse:
    """Subscribe a student to a course or a service."""
    student = (await get_service(db, current_user).find_by_id(student_id)).unwrap()
    subscription = await subscription_service.create_subscription(db, student, subscription_data)
    return SubscriptionResponse.model_validate(subscription)


@router.post(
    "/{student_id}/subscriptions/{subscription_id}/end",
    response_model=SubscriptionResponse,
)
async def end_subscription(
    student_id: UUID,
    subscription_id: UUID,
    db: DbSession,
    current_user: StudentWriter,
    end_data: SubscriptionEnd | None = None,
) -> SubscriptionResponse:
    student = (await get_service(db, current_user).find_by_id(student_id)).unwrap()
    subscription = await subscription_service.get_subscription_by_id(db, subscription_id, student.id)
    if subscription is None:
        raise ServiceError(ErrorCode.RECORD_NOT_FOUND, "Subscription not found")

    subscription = await subscription_service.end_subscription(
        db, subscription, end_data.end_date if end_data else None
    )
    return SubscriptionResponse.model_validate(subscription)
