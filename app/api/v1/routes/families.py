"""Family routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.responses import envelope
from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.models.user import User
from app.schemas.common import Envelope, Page
from app.schemas.family import FamilyCreate, FamilyResponse, FamilyUpdate
from app.schemas.fee import FamilyFeeSummary
from app.schemas.student import StudentResponse
from app.services import fee as fee_service
from app.services.base import ErrorCode, PaginationOptions, ServiceFailure
from app.services.family import FamilyService
from app.services.student import StudentService

router = APIRouter(
    prefix="/families",
    tags=["Families"],
    dependencies=[Depends(require_module("student-management"))],
)

FamilyReader = Annotated[User, Depends(require_permission("families:read"))]
FamilyWriter = Annotated[User, Depends(require_permission("families:write"))]


def get_service(db, user: User, institute_id: UUID | None = None) -> FamilyService:
    return FamilyService(db, resolve_institute_id(user, institute_id))


@router.get("", response_model=Envelope[Page[FamilyResponse]])
async def list_families(
    db: DbSession,
    current_user: FamilyReader,
    institute_id: UUID | None = Query(None, description="Filter by institute (superadmin)"),
    search: str | None = Query(None, description="Search by name, email or phone"),
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
    result = await get_service(db, current_user, institute_id).find_many(options)
    return envelope(result, FamilyResponse)


@router.post("", response_model=Envelope[FamilyResponse], status_code=status.HTTP_201_CREATED)
async def create_family(
    family_data: FamilyCreate,
    db: DbSession,
    current_user: FamilyWriter,
):
    result = await get_service(db, current_user).create(family_data)
    return envelope(result, FamilyResponse)


@router.get("/{family_id}", response_model=Envelope[FamilyResponse])
async def get_family(
    family_id: UUID,
    db: DbSession,
    current_user: FamilyReader,
):
    result = await get_service(db, current_user).find_by_id(family_id)
    return envelope(result, FamilyResponse)


@router.patch("/{family_id}", response_model=Envelope[FamilyResponse])
async def update_family(
    family_id: UUID,
    family_data: FamilyUpdate,
    db: DbSession,
    current_user: FamilyWriter,
):
    result = await get_service(db, current_user).update(family_id, family_data)
    return envelope(result, FamilyResponse)


@router.delete("/{family_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_family(
    family_id: UUID,
    db: DbSession,
    current_user: FamilyWriter,
) -> None:
    """Deactivate a family. Families with active students are kept."""
    result = await get_service(db, current_user).delete(family_id)
    if not result.success and result.code != ErrorCode.ALREADY_INACTIVE.value:
        raise ServiceFailure(result)


@router.get("/{family_id}/students", response_model=Envelope[list[StudentResponse]])
async def list_family_students(
    family_id: UUID,
    db: DbSession,
    current_user: Annotated[User, Depends(require_permission("students:read"))],
):
    service = StudentService(db, resolve_institute_id(current_user, None))
    return envelope(await service.find_by_family_id(family_id), StudentResponse)


@router.get(
    "/{family_id}/fees",
    response_model=FamilyFeeSummary,
    dependencies=[Depends(require_module("fee-management"))],
)
async def get_family_fees(
    family_id: UUID,
    db: DbSession,
    current_user: Annotated[User, Depends(require_permission("fees:read"))],
) -> FamilyFeeSummary:
    """Monthly fees of every active student in the family."""
    summary = await fee_service.calculate_family_fees(
        db, family_id, resolve_institute_id(current_user, None)
    )
    return FamilyFeeSummary.model_validate(summary)
