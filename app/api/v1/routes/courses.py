"""Course and service routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.responses import envelope
from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.models.user import User
from app.schemas.common import Envelope, Page
from app.schemas.course import (
    CourseCreate,
    CourseResponse,
    CourseUpdate,
    OfferingCreate,
    OfferingResponse,
    OfferingUpdate,
)
from app.services.base import ErrorCode, PaginationOptions, ServiceFailure
from app.services.course import CourseService, OfferingService

module_gate = [Depends(require_module("course-management"))]

router = APIRouter(prefix="/courses", tags=["Courses"], dependencies=module_gate)
services_router = APIRouter(prefix="/services", tags=["Services"], dependencies=module_gate)

CourseReader = Annotated[User, Depends(require_permission("courses:read"))]
CourseWriter = Annotated[User, Depends(require_permission("courses:write"))]


def _raise_unless_deleted(result) -> None:
    if not result.success and result.code != ErrorCode.ALREADY_INACTIVE.value:
        raise ServiceFailure(result)


# ============== Courses ==============


@router.get("", response_model=Envelope[Page[CourseResponse]])
async def list_courses(
    db: DbSession,
    current_user: CourseReader,
    institute_id: UUID | None = Query(None),
    search: str | None = Query(None),
    grade: str | None = Query(None),
    teacher_id: UUID | None = Query(None),
    is_active: bool | None = Query(None),
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
            "teacher_id": teacher_id,
            "is_active": is_active,
            "include_inactive": include_inactive,
        },
    )
    service = CourseService(db, resolve_institute_id(current_user, institute_id))
    return envelope(await service.find_many(options), CourseResponse)


@router.post("", response_model=Envelope[CourseResponse], status_code=status.HTTP_201_CREATED)
async def create_course(course_data: CourseCreate, db: DbSession, current_user: CourseWriter):
    """Create a course, optionally with its fee."""
    service = CourseService(db, resolve_institute_id(current_user, None))
    return envelope(await service.create(course_data), CourseResponse)


@router.get("/{course_id}", response_model=Envelope[CourseResponse])
async def get_course(course_id: UUID, db: DbSession, current_user: CourseReader):
    service = CourseService(db, resolve_institute_id(current_user, None))
    return envelope(await service.find_by_id(course_id), CourseResponse)


@router.patch("/{course_id}", response_model=Envelope[CourseResponse])
async def update_course(
    course_id: UUID,
    course_data: CourseUpdate,
    db: DbSession,
    current_user: CourseWriter,
):
    service = CourseService(db, resolve_institute_id(current_user, None))
    return envelope(await service.update(course_id, course_data), CourseResponse)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(course_id: UUID, db: DbSession, current_user: CourseWriter) -> None:
    service = CourseService(db, resolve_institute_id(current_user, None))
    _raise_unless_deleted(await service.delete(course_id))


# ============== Services ==============


@services_router.get("", response_model=Envelope[Page[OfferingResponse]])
async def list_services(
    db: DbSession,
    current_user: CourseReader,
    institute_id: UUID | None = Query(None),
    search: str | None = Query(None),
    is_active: bool | None = Query(None),
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
        filters={"is_active": is_active, "include_inactive": include_inactive},
    )
    service = OfferingService(db, resolve_institute_id(current_user, institute_id))
    return envelope(await service.find_many(options), OfferingResponse)


@services_router.post(
    "", response_model=Envelope[OfferingResponse], status_code=status.HTTP_201_CREATED
)
async def create_service(
    service_data: OfferingCreate,
    db: DbSession,
    current_user: CourseWriter,
):
    """Create a service such as transport or meals."""
    service = OfferingService(db, resolve_institute_id(current_user, None))
    return envelope(await service.create(service_data), OfferingResponse)


@services_router.get("/{service_id}", response_model=Envelope[OfferingResponse])
async def get_service(service_id: UUID, db: DbSession, current_user: CourseReader):
    service = OfferingService(db, resolve_institute_id(current_user, None))
    return envelope(await service.find_by_id(service_id), OfferingResponse)


@services_router.patch("/{service_id}", response_model=Envelope[OfferingResponse])
async def update_service(
    service_id: UUID,
    service_data: OfferingUpdate,
    db: DbSession,
    current_user: CourseWriter,
):
    service = OfferingService(db, resolve_institute_id(current_user, None))
    return envelope(await service.update(service_id, service_data), OfferingResponse)


@services_router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(service_id: UUID, db: DbSession, current_user: CourseWriter) -> None:
    service = OfferingService(db, resolve_institute_id(current_user, None))
    _raise_unless_deleted(await service.delete(service_id))
