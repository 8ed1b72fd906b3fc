"""Student subscription service."""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.course import Course, Service
from app.models.student import Student
from app.models.subscription import StudentSubscription
from app.schemas.subscription import SubscriptionCreate
from app.services.base import ErrorCode, ServiceError


async def get_subscription_by_id(
    db: AsyncSession,
    subscription_id: UUID,
    student_id: UUID,
) -> StudentSubscription | None:
    """Get a subscription belonging to a student."""
    result = await db.execute(
        select(StudentSubscription).where(
            StudentSubscription.id == subscription_id,
            StudentSubscription.student_id == student_id,
        )
    )
    return result.scalar_one_or_none()


async def get_student_subscriptions(
    db: AsyncSession,
    student_id: UUID,
    *,
    active_only: bool = False,
) -> list[StudentSubscription]:
    """Get subscriptions of a student, newest first."""
    query = select(StudentSubscription).where(StudentSubscription.student_id == student_id)
    if active_only:
        query = query.where(StudentSubscription.end_date.is_(None))
    query = query.order_by(StudentSubscription.start_date.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def create_subscription(
    db: AsyncSession,
    student: Student,
    subscription_data: SubscriptionCreate,
) -> StudentSubscription:
    """Subscribe an active student to an active course or service."""
    if not student.is_active:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, "Student is not active")

    if subscription_data.course_id:
        model, target_id, column = Course, subscription_data.course_id, StudentSubscription.course_id
    else:
        model, target_id, column = Service, subscription_data.service_id, StudentSubscription.service_id

    target = (
        await db.execute(
            select(model).where(
                model.id == target_id,
                model.institute_id == student.institute_id,
            )
        )
    ).scalar_one_or_none()
    if target is None:
        raise ServiceError(
            ErrorCode.RECORD_NOT_FOUND,
            f"{model.__name__} not found",
            {"id": str(target_id)},
        )
    if not target.is_active:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, f"{model.__name__} is not active")

    existing = await db.execute(
        select(StudentSubscription.id).where(
            StudentSubscription.student_id == student.id,
            column == target_id,
            StudentSubscription.end_date.is_(None),
        )
    )
    if existing.first() is not None:
        raise ServiceError(
            ErrorCode.VALIDATION_ERROR,
            f"Student already has an active subscription to this {model.__name__.lower()}",
        )

    subscription = StudentSubscription(
        institute_id=student.institute_id,
        student_id=student.id,
        course_id=subscription_data.course_id,
        service_id=subscription_data.service_id,
        discount_amount=subscription_data.discount_amount,
        start_date=subscription_data.start_date or date.today(),
    )
    db.add(subscription)
    await db.commit()
    await db.refresh(subscription)

    return subscription


async def end_subscription(
    db: AsyncSession,
    subscription: StudentSubscription,
    end_date: date | None = None,
) -> StudentSubscription:
    """End an active subscription; ended subscriptions no longer count towards fees."""
    if subscription.end_date is not None:
        raise ServiceError(ErrorCode.ALREADY_INACTIVE, "Subscription has already ended")

    end_date = end_date or date.today()
    if end_date < subscription.start_date:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, "End date is before the start date")

    subscription.end_date = end_date
    await db.commit()
    await db.refresh(subscription)

    return subscription
