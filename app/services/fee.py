"""
Fee service - monthly fee calculation and allocations.

A student's monthly fee is the sum of their active subscriptions, each
converted to a monthly amount, minus per-subscription discounts and a share
of the family discount. The family discount is split between the family's
active students in proportion to their gross monthly fee.
"""

import logging
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.models.course import BillingCycle, Course, Service
from app.models.family import Family
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.student import Student
from app.models.subscription import StudentSubscription
from app.services.base import ErrorCode, ServiceError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

MONTHS_PER_CYCLE = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.QUARTERLY: 3,
    BillingCycle.HALF_YEARLY: 6,
    BillingCycle.YEARLY: 12,
}

# Loads every active student of a family with subscriptions and prices
_subscriptions = selectinload(Family.students).selectinload(Student.subscriptions)
FAMILY_FEE_OPTIONS = (
    _subscriptions.selectinload(StudentSubscription.course).selectinload(Course.fee_structure),
    _subscriptions.selectinload(StudentSubscription.service).selectinload(Service.fee_structure),
)


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def convert_to_monthly_amount(amount: Decimal | int | float | str, billing_cycle: str) -> Decimal:
    """Convert a fee charged per billing cycle to a monthly amount."""
    try:
        months = MONTHS_PER_CYCLE[BillingCycle(billing_cycle)]
    except ValueError:
        # Unknown cycles are charged as monthly
        months = 1
    return _money(Decimal(str(amount)) / months)


def subscription_items(student: Student) -> list[dict[str, Any]]:
    """Priced active subscriptions of a student."""
    items = []
    for subscription in student.subscriptions:
        if not subscription.is_active:
            continue

        target = subscription.course or subscription.service
        if target is None or target.fee_structure is None:
            continue

        fee = target.fee_structure
        items.append(
            {
                "subscription_id": subscription.id,
                "kind": "course" if subscription.course is not None else "service",
                "name": target.name,
                "amount": fee.amount,
                "billing_cycle": fee.billing_cycle,
                "monthly_amount": convert_to_monthly_amount(fee.amount, fee.billing_cycle),
                "discount_amount": subscription.discount_amount or ZERO,
            }
        )
    return items


def gross_monthly_fee(student: Student) -> Decimal:
    return sum((item["monthly_amount"] for item in subscription_items(student)), ZERO)


def family_discount_share(family: Family, student: Student) -> Decimal:
    """Part of the family discount carried by one student, rounded to cents."""
    discount = family.discount_amount or ZERO
    if discount <= 0 or not student.is_active:
        return ZERO

    family_gross = sum(
        (gross_monthly_fee(s) for s in family.students if s.is_active),
        ZERO,
    )
    if family_gross == 0:
        return ZERO

    return _money(discount * gross_monthly_fee(student) / family_gross)


def build_fee_breakdown(family: Family, student: Student) -> dict[str, Any]:
    """Monthly fee of a student whose family was loaded with FAMILY_FEE_OPTIONS."""
    items = subscription_items(student)
    gross = sum((item["monthly_amount"] for item in items), ZERO)
    item_discount = sum((item["discount_amount"] for item in items), ZERO)
    family_share = family_discount_share(family, student)
    total_discount = item_discount + family_share

    return {
        "student_id": student.id,
        "student_name": student.name,
        "items": items,
        "gross_amount": _money(gross),
        "item_discount": _money(item_discount),
        "family_discount": family_share,
        "total_discount": _money(total_discount),
        "net_amount": _money(max(ZERO, gross - total_discount)),
    }


async def load_family_for_fees(
    db: AsyncSession,
    family_id: UUID,
    institute_id: UUID | None = None,
) -> Family:
    query = select(Family).where(Family.id == family_id)
    if institute_id is not None:
        query = query.where(Family.institute_id == institute_id)
    query = query.options(*FAMILY_FEE_OPTIONS).execution_options(populate_existing=True)

    family = (await db.execute(query)).scalar_one_or_none()
    if family is None:
        raise ServiceError(ErrorCode.FAMILY_NOT_FOUND, "Family not found", {"family_id": str(family_id)})
    return family


async def calculate_student_monthly_fee(
    db: AsyncSession,
    student_id: UUID,
    institute_id: UUID | None = None,
) -> dict[str, Any]:
    """Fee breakdown of a single student."""
    query = select(Student.family_id).where(Student.id == student_id)
    if institute_id is not None:
        query = query.where(Student.institute_id == institute_id)
    family_id = (await db.execute(query)).scalar_one_or_none()
    if family_id is None:
        raise ServiceError(
            ErrorCode.STUDENT_NOT_FOUND,
            "Student not found",
            {"student_id": str(student_id)},
        )

    family = await load_family_for_fees(db, family_id)
    student = next(s for s in family.students if s.id == student_id)
    return build_fee_breakdown(family, student)


async def calculate_family_fees(
    db: AsyncSession,
    family_id: UUID,
    institute_id: UUID | None = None,
) -> dict[str, Any]:
    """Fee breakdown for every active student of a family."""
    family = await load_family_for_fees(db, family_id, institute_id)
    students = [
        build_fee_breakdown(family, student)
        for student in sorted(family.students, key=lambda s: s.name)
        if student.is_active
    ]

    return {
        "family_id": family.id,
        "family_name": family.name,
        "family_discount": family.discount_amount or ZERO,
        "students": students,
        "gross_amount": _money(sum((s["gross_amount"] for s in students), ZERO)),
        "total_discount": _money(sum((s["total_discount"] for s in students), ZERO)),
        "net_amount": _money(sum((s["net_amount"] for s in students), ZERO)),
    }


def allocation_due_date(month: int, year: int) -> date:
    return date(year, month, settings.FEE_DUE_DAY)


async def generate_monthly_allocations(
    db: AsyncSession,
    institute_id: UUID,
    month: int,
    year: int,
    student_ids: Iterable[UUID] | None = None,
) -> dict[str, int]:
    """
    Create or refresh one allocation per student with active subscriptions.

    Existing allocations get fresh amounts and due date, and their status is
    recomputed from what has been paid so far. Fully paid allocations are
    left untouched.
    """
    if not 1 <= month <= 12:
        raise ServiceError(ErrorCode.VALIDATION_ERROR, "Month must be between 1 and 12")

    month_start = date(year, month, 1)
    due_date = allocation_due_date(month, year)
    wanted = set(student_ids) if student_ids is not None else None

    family_query = (
        select(Family)
        .where(Family.institute_id == institute_id, Family.is_active.is_(True))
        .options(*FAMILY_FEE_OPTIONS)
        .execution_options(populate_existing=True)
    )
    families = (await db.execute(family_query)).scalars().all()

    existing_query = (
        select(FeeAllocation)
        .where(
            FeeAllocation.institute_id == institute_id,
            FeeAllocation.month == month_start,
            FeeAllocation.year == year,
        )
        .options(selectinload(FeeAllocation.payment_allocations))
        .execution_options(populate_existing=True)
    )
    existing = {a.student_id: a for a in (await db.execute(existing_query)).scalars().all()}

    created = updated = skipped = 0
    for family in families:
        for student in family.students:
            if not student.is_active or (wanted is not None and student.id not in wanted):
                continue
            if not any(s.is_active for s in student.subscriptions):
                continue

            breakdown = build_fee_breakdown(family, student)
            allocation = existing.get(student.id)

            if allocation is None:
                db.add(
                    FeeAllocation(
                        institute_id=institute_id,
                        student_id=student.id,
                        month=month_start,
                        year=year,
                        gross_amount=breakdown["gross_amount"],
                        discount_amount=breakdown["total_discount"],
                        net_amount=breakdown["net_amount"],
                        status=AllocationStatus.PENDING,
                        due_date=due_date,
                    )
                )
                created += 1
            elif allocation.status == AllocationStatus.PAID:
                skipped += 1
            else:
                allocation.gross_amount = breakdown["gross_amount"]
                allocation.discount_amount = breakdown["total_discount"]
                allocation.net_amount = breakdown["net_amount"]
                allocation.due_date = due_date
                allocation.update_status()
                updated += 1

    await db.commit()
    logger.info(
        "Fee allocations for %04d-%02d: %d created, %d updated, %d skipped",
        year,
        month,
        created,
        updated,
        skipped,
    )

    return {"month": month, "year": year, "created": created, "updated": updated, "skipped": skipped}


async def mark_overdue_allocations(
    db: AsyncSession,
    institute_id: UUID | None = None,
    today: date | None = None,
) -> int:
    """Flag pending allocations past their due date as overdue."""
    today = today or date.today()
    statement = update(FeeAllocation).where(
        FeeAllocation.status == AllocationStatus.PENDING,
        FeeAllocation.due_date < today,
    )
    if institute_id is not None:
        statement = statement.where(FeeAllocation.institute_id == institute_id)

    result = await db.execute(statement.values(status=AllocationStatus.OVERDUE))
    await db.commit()

    logger.info("Marked %d fee allocations overdue", result.rowcount)
    return result.rowcount


async def get_allocation_by_id(
    db: AsyncSession,
    allocation_id: UUID,
    institute_id: UUID | None = None,
) -> FeeAllocation | None:
    query = (
        select(FeeAllocation)
        .where(FeeAllocation.id == allocation_id)
        .options(selectinload(FeeAllocation.payment_allocations))
        .execution_options(populate_existing=True)
    )
    if institute_id is not None:
        query = query.where(FeeAllocation.institute_id == institute_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_allocations(
    db: AsyncSession,
    *,
    institute_id: UUID | None = None,
    student_id: UUID | None = None,
    family_id: UUID | None = None,
    status: AllocationStatus | None = None,
    month: int | None = None,
    year: int | None = None,
    skip: int = 0,
    limit: int = 100,
) -> tuple[list[FeeAllocation], int]:
    """Get fee allocations with filters, oldest month first."""
    query = select(FeeAllocation)

    if institute_id:
        query = query.where(FeeAllocation.institute_id == institute_id)
    if student_id:
        query = query.where(FeeAllocation.student_id == student_id)
    if family_id:
        query = query.where(
            FeeAllocation.student_id.in_(select(Student.id).where(Student.family_id == family_id))
        )
    if status:
        query = query.where(FeeAllocation.status == status)
    if year:
        query = query.where(FeeAllocation.year == year)
    if month and year:
        query = query.where(FeeAllocation.month == date(year, month, 1))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        query.options(selectinload(FeeAllocation.payment_allocations))
        .execution_options(populate_existing=True)
        .order_by(FeeAllocation.month.asc(), FeeAllocation.created_at.asc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(query)

    return list(result.scalars().all()), total
