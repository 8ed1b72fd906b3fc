"""User service."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import Role
from app.core.security import get_password_hash
from app.models.family import Family
from app.models.student import Student
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.services.base import ErrorCode, ServiceError


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    """Get user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get user by email."""
    result = await db.execute(
        select(User).where(User.email == email)
    )
    return result.scalar_one_or_none()


async def get_users(
    db: AsyncSession,
    *,
    institute_id: UUID | None = None,
    role: Role | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[User], int]:
    """Get list of users with optional filters."""
    query = select(User)

    # Apply filters
    if institute_id is not None:
        query = query.where(User.institute_id == institute_id)

    if role is not None:
        query = query.where(User.role == role)

    if is_active is not None:
        query = query.where(User.is_active == is_active)

    if search:
        query = query.where(User.name.ilike(f"%{search}%") | User.email.ilike(f"%{search}%"))

    # Get total count
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Get paginated results
    query = query.order_by(User.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    users = list(result.scalars().all())

    return users, total


async def validate_links(
    db: AsyncSession,
    role: Role,
    institute_id: UUID | None,
    family_id: UUID | None,
    student_id: UUID | None,
) -> None:
    """Parents need a family and student accounts a student of the same institute."""
    if role != Role.SUPERADMIN and institute_id is None:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, "institute_id is required for this role")

    if role == Role.PARENT:
        if family_id is None:
            raise ServiceError(ErrorCode.VALIDATION_ERROR, "Parents must be linked to a family")
        family = await db.get(Family, family_id)
        if family is None or family.institute_id != institute_id:
            raise ServiceError(ErrorCode.FAMILY_NOT_FOUND, "Family not found")

    if role == Role.STUDENT:
        if student_id is None:
            raise ServiceError(ErrorCode.VALIDATION_ERROR, "Student accounts must be linked to a student")
        student = await db.get(Student, student_id)
        if student is None or student.institute_id != institute_id:
            raise ServiceError(ErrorCode.STUDENT_NOT_FOUND, "Student not found")


async def create_user(db: AsyncSession, user_data: UserCreate) -> User:
    """Create a new user."""
    await validate_links(
        db,
        user_data.role,
        user_data.institute_id,
        user_data.family_id,
        user_data.student_id,
    )

    user = User(
        email=user_data.email,
        password_hash=get_password_hash(user_data.password),
        name=user_data.name,
        role=user_data.role,
        institute_id=None if user_data.role == Role.SUPERADMIN else user_data.institute_id,
        family_id=user_data.family_id if user_data.role == Role.PARENT else None,
        student_id=user_data.student_id if user_data.role == Role.STUDENT else None,
    )

    db.add(user)
    await db.commit()
    await db.refresh(user)

    return user


async def update_user(
    db: AsyncSession,
    user: User,
    user_data: UserUpdate,
) -> User:
    """Update a user."""
    update_data = user_data.model_dump(exclude_unset=True)

    if {"role", "family_id", "student_id"} & update_data.keys():
        await validate_links(
            db,
            update_data.get("role") or user.role,
            user.institute_id,
            update_data.get("family_id", user.family_id),
            update_data.get("student_id", user.student_id),
        )

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)

    return user


async def change_password(
    db: AsyncSession,
    user: User,
    new_password: str,
) -> User:
    """Change user's password."""
    user.password_hash = get_password_hash(new_password)
    await db.commit()
    await db.refresh(user)
    return user


async def deactivate_user(db: AsyncSession, user: User) -> User:
    """Soft delete a user by setting is_active to False."""
    user.is_active = False
    await db.commit()
    await db.refresh(user)
    return user
