"""Institute routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import CurrentUser, DbSession
from app.core.permissions import can_manage_institutes
from app.models.user import User
from app.schemas.institute import (
    InstituteCreate,
    InstituteListResponse,
    InstituteResponse,
    InstituteUpdate,
)
from app.services import institute as institute_service

router = APIRouter(prefix="/institutes", tags=["Institutes"])


async def require_institute_manager(current_user: CurrentUser) -> User:
    if not can_manage_institutes(current_user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only platform operators can manage institutes",
        )
    return current_user


InstituteManager = Annotated[User, Depends(require_institute_manager)]


# ============== Endpoints ==============


@router.get("", response_model=InstituteListResponse)
async def list_institutes(
    db: DbSession,
    current_user: CurrentUser,
    is_active: bool | None = Query(None, description="Filter by active status"),
    search: str | None = Query(None, description="Search by institute name"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Max number of records"),
) -> InstituteListResponse:
    """
    List institutes.

    - SUPERADMIN: Can see all institutes
    - Others: Can only see their own institute
    """
    if can_manage_institutes(current_user.role):
        institutes, total = await institute_service.get_institutes(
            db,
            is_active=is_active,
            search=search,
            skip=skip,
            limit=limit,
        )
    elif current_user.institute_id:
        institute = await institute_service.get_institute_by_id(db, current_user.institute_id)
        institutes = [institute] if institute else []
        total = len(institutes)
    else:
        institutes = []
        total = 0

    return InstituteListResponse(
        items=[InstituteResponse.model_validate(i) for i in institutes],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post(
    "",
    response_model=InstituteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_institute(
    institute_data: InstituteCreate,
    db: DbSession,
    current_user: InstituteManager,
) -> InstituteResponse:
    """Create a new institute. Only SUPERADMIN can create institutes."""
    institute = await institute_service.create_institute(db, institute_data)
    return InstituteResponse.model_validate(institute)


@router.get("/{institute_id}", response_model=InstituteResponse)
async def get_institute(
    institute_id: UUID,
    db: DbSession,
    current_user: CurrentUser,
) -> InstituteResponse:
    """
    Get a specific institute by ID.

    - SUPERADMIN: Can see any institute
    - Others: Can only see their own institute
    """
    institute = await institute_service.get_institute_by_id(db, institute_id)

    if not institute or (
        not current_user.is_superadmin and current_user.institute_id != institute_id
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Institute not found",
        )

    return InstituteResponse.model_validate(institute)


@router.patch(
    "/{institute_id}",
    response_model=InstituteResponse,
)
async def update_institute(
    institute_id: UUID,
    institute_data: InstituteUpdate,
    db: DbSession,
    current_user: InstituteManager,
) -> InstituteResponse:
    """Update an institute. Only SUPERADMIN can update institutes."""
    institute = await institute_service.get_institute_by_id(db, institute_id)

    if not institute:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Institute not found",
        )

    updated = await institute_service.update_institute(db, institute, institute_data)
    return InstituteResponse.model_validate(updated)


@router.delete(
    "/{institute_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_institute(
    institute_id: UUID,
    db: DbSession,
    current_user: InstituteManager,
) -> None:
    """Deactivate an institute (soft delete)."""
    institute = await institute_service.get_institute_by_id(db, institute_id)

    if not institute:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Institute not found",
        )

    await institute_service.deactivate_institute(db, institute)
