"""User routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import CurrentUser, DbSession, require_permission, resolve_institute_id
from app.core.permissions import Role, can_create_role
from app.core.security import verify_password
from app.models.user import User
from app.schemas.user import (
    PasswordChange,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
    UserUpdateMe,
)
from app.services import user as user_service

router = APIRouter(prefix="/users", tags=["Users"])

UserReader = Annotated[User, Depends(require_permission("users:read"))]
UserWriter = Annotated[User, Depends(require_permission("users:write"))]


# ============== Helper Functions ==============


def can_manage_user(manager: User, target: User) -> bool:
    """Check if manager can manage (update/delete) target user."""
    # Can't manage yourself through this (use /me endpoints)
    if manager.id == target.id:
        return False

    if manager.is_superadmin:
        return True

    # Institute admins manage the lower roles of their own institute
    if manager.institute_id != target.institute_id:
        return False
    return can_create_role(manager.role, target.role)


async def get_visible_user(db, user_id: UUID, current_user: User) -> User:
    user = await user_service.get_user_by_id(db, user_id)

    # Users of other institutes look like missing ones
    if not user or (
        not current_user.is_superadmin and user.institute_id != current_user.institute_id
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


# ============== Endpoints ==============


@router.get("", response_model=UserListResponse)
async def list_users(
    db: DbSession,
    current_user: UserReader,
    institute_id: UUID | None = Query(None, description="Filter by institute ID"),
    role: Role | None = Query(None, description="Filter by role"),
    is_active: bool | None = Query(None, description="Filter by active status"),
    search: str | None = Query(None, description="Search by name or email"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(20, ge=1, le=100, description="Max number of records"),
) -> UserListResponse:
    """
    List users with optional filters.

    - SUPERADMIN: Can see all users, can filter by institute_id
    - ADMIN: Can only see users from their own institute
    """
    users, total = await user_service.get_users(
        db,
        institute_id=resolve_institute_id(current_user, institute_id),
        role=role,
        is_active=is_active,
        search=search,
        skip=skip,
        limit=limit,
    )

    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: DbSession,
    current_user: UserWriter,
) -> UserResponse:
    """
    Create a new user.

    - Can only create roles allowed by ROLE_HIERARCHY
    - Admins can only create users in their own institute
    """
    if not can_create_role(current_user.role, user_data.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You don't have permission to create users with role '{user_data.role.value}'",
        )

    if not current_user.is_superadmin:
        if user_data.institute_id not in (None, current_user.institute_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only create users in your own institute",
            )
        user_data.institute_id = current_user.institute_id

    if await user_service.get_user_by_email(db, user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    user = await user_service.create_user(db, user_data)
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> UserResponse:
    """Get current user's profile."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    user_data: UserUpdateMe,
    db: DbSession,
    current_user: CurrentUser,
) -> UserResponse:
    """Update current user's profile (name, email)."""
    if user_data.email and user_data.email != current_user.email:
        if await user_service.get_user_by_email(db, user_data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered",
            )

    update_data = UserUpdate.model_validate(user_data.model_dump(exclude_unset=True))
    user = await user_service.update_user(db, current_user, update_data)
    return UserResponse.model_validate(user)


@router.post("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_my_password(
    password_data: PasswordChange,
    db: DbSession,
    current_user: CurrentUser,
) -> None:
    """Change current user's password."""
    if not verify_password(password_data.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    await user_service.change_password(db, current_user, password_data.new_password)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    db: DbSession,
    current_user: UserReader,
) -> UserResponse:
    """Get a specific user by ID."""
    user = await get_visible_user(db, user_id, current_user)
    return UserResponse.model_validate(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    user_data: UserUpdate,
    db: DbSession,
    current_user: UserWriter,
) -> UserResponse:
    """
    Update a user.

    - Can only update users whose role you could create
    - Cannot change role to one you can't create
    """
    user = await get_visible_user(db, user_id, current_user)

    if not can_manage_user(current_user, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permission to update this user",
        )

    if user_data.role and user_data.role != user.role:
        if not can_create_role(current_user.role, user_data.role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"You can't assign role '{user_data.role.value}'",
            )

    if user_data.email and user_data.email != user.email:
        if await user_service.get_user_by_email(db, user_data.email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered",
            )

    updated_user = await user_service.update_user(db, user, user_data)
    return UserResponse.model_validate(updated_user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    db: DbSession,
    current_user: UserWriter,
) -> None:
    """Deactivate a user (soft delete)."""
    user = await get_visible_user(db, user_id, current_user)

    if not can_manage_user(current_user, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You don't have permission to delete this user",
        )

    await user_service.deactivate_user(db, user)
