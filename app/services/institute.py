"""Institute service."""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.institute import Institute
from app.schemas.institute import InstituteCreate, InstituteUpdate


async def get_institute_by_id(db: AsyncSession, institute_id: UUID) -> Institute | None:
    """Get institute by ID."""
    result = await db.execute(select(Institute).where(Institute.id == institute_id))
    return result.scalar_one_or_none()


async def get_institutes(
    db: AsyncSession,
    *,
    is_active: bool | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Institute], int]:
    """Get list of institutes with optional filters."""
    query = select(Institute)
    count_query = select(func.count()).select_from(Institute)

    # Apply filters
    if is_active is not None:
        query = query.where(Institute.is_active == is_active)
        count_query = count_query.where(Institute.is_active == is_active)

    if search:
        search_filter = Institute.name.ilike(f"%{search}%")
        query = query.where(search_filter)
        count_query = count_query.where(search_filter)

    # Get total count
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Get paginated results
    query = query.order_by(Institute.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    institutes = list(result.scalars().all())

    return institutes, total


async def create_institute(db: AsyncSession, institute_data: InstituteCreate) -> Institute:
    """Create a new institute."""
    institute = Institute(**institute_data.model_dump())

    db.add(institute)
    await db.commit()
    await db.refresh(institute)

    return institute


async def update_institute(
    db: AsyncSession,
    institute: Institute,
    institute_data: InstituteUpdate,
) -> Institute:
    """Update an institute."""
    update_data = institute_data.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        setattr(institute, field, value)

    await db.commit()
    await db.refresh(institute)

    return institute


async def deactivate_institute(db: AsyncSession, institute: Institute) -> Institute:
    """Soft delete an institute by setting is_active to False."""
    institute.is_active = False
    await db.commit()
    await db.refresh(institute)
    return institute
