"""Payment service - business logic for payment operations."""

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.family import Family
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.payment import Payment, PaymentAllocation, PaymentMethod
from app.models.student import Student
from app.schemas.payment import PaymentCreate
from app.services.base import ErrorCode, ServiceError, with_transaction

logger = logging.getLogger(__name__)

PAYMENT_OPTIONS = (
    selectinload(Payment.allocations),
    selectinload(Payment.received_by),
)


async def get_payment_by_id(
    db: AsyncSession,
    payment_id: UUID,
    institute_id: UUID | None = None,
) -> Payment | None:
    """Get payment by ID, optionally filtered by institute."""
    query = select(Payment).where(Payment.id == payment_id)
    if institute_id:
        query = query.where(Payment.institute_id == institute_id)
    query = query.options(*PAYMENT_OPTIONS).execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_payments(
    db: AsyncSession,
    institute_id: UUID | None = None,
    family_id: UUID | None = None,
    student_id: UUID | None = None,
    payment_method: PaymentMethod | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    skip: int = 0,
    limit: int = 100,
) -> tuple[list[Payment], int]:
    """Get payments with filters."""
    query = select(Payment)

    # Apply filters
    if institute_id:
        query = query.where(Payment.institute_id == institute_id)
    if family_id:
        query = query.where(Payment.family_id == family_id)
    if student_id:
        query = query.where(
            Payment.id.in_(
                select(PaymentAllocation.payment_id)
                .join(FeeAllocation, PaymentAllocation.fee_allocation_id == FeeAllocation.id)
                .where(FeeAllocation.student_id == student_id)
            )
        )
    if payment_method:
        query = query.where(Payment.payment_method == payment_method)
    if date_from:
        query = query.where(Payment.payment_date >= date_from)
    if date_to:
        query = query.where(Payment.payment_date <= date_to)

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Apply pagination and ordering
    query = query.options(*PAYMENT_OPTIONS).order_by(
        Payment.payment_date.desc(), Payment.created_at.desc()
    )
    query = query.offset(skip).limit(limit)

    result = await db.execute(query)
    payments = list(result.scalars().all())

    return payments, total


async def _family_allocations(
    db: AsyncSession,
    family_id: UUID,
    allocation_ids: list[UUID] | None = None,
) -> list[FeeAllocation]:
    """Unpaid allocations of a family's students, oldest first."""
    query = (
        select(FeeAllocation)
        .join(Student, FeeAllocation.student_id == Student.id)
        .where(Student.family_id == family_id)
        .options(selectinload(FeeAllocation.payment_allocations))
        .execution_options(populate_existing=True)
        .order_by(FeeAllocation.month.asc(), FeeAllocation.created_at.asc())
    )
    if allocation_ids is not None:
        query = query.where(FeeAllocation.id.in_(allocation_ids))
    else:
        query = query.where(FeeAllocation.status != AllocationStatus.PAID)

    result = await db.execute(query)
    return list(result.scalars().all())


async def _plan_allocations(
    db: AsyncSession,
    payment_data: PaymentCreate,
) -> list[tuple[FeeAllocation, Decimal]]:
    """Decide how much of the payment goes to which fee allocation."""
    requested: dict[UUID, Decimal] = {}
    for item in payment_data.allocations:
        previous = requested.get(item.fee_allocation_id, Decimal(0))
        requested[item.fee_allocation_id] = previous + item.amount

    plan: list[tuple[FeeAllocation, Decimal]] = []
    available = payment_data.amount

    if requested:
        found = {
            a.id: a
            for a in await _family_allocations(db, payment_data.family_id, list(requested))
        }
        for allocation_id, amount in requested.items():
            allocation = found.get(allocation_id)
            if allocation is None:
                raise ServiceError(
                    ErrorCode.RECORD_NOT_FOUND,
                    "Fee allocation not found for this family",
                    {"fee_allocation_id": str(allocation_id)},
                )
            if amount > allocation.remaining_amount:
                raise ServiceError(
                    ErrorCode.VALIDATION_ERROR,
                    "Allocated amount exceeds the remaining balance",
                    {
                        "fee_allocation_id": str(allocation_id),
                        "remaining": str(allocation.remaining_amount),
                    },
                )
            plan.append((allocation, amount))
            available -= amount

        if available < 0:
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                "Allocated amounts exceed the payment amount",
                {"amount": str(payment_data.amount)},
            )

    if payment_data.auto_allocate and available > 0:
        for allocation in await _family_allocations(db, payment_data.family_id):
            if allocation.id in requested:
                continue
            amount = min(available, allocation.remaining_amount)
            if amount <= 0:
                continue
            plan.append((allocation, amount))
            available -= amount
            if available <= 0:
                break

    return plan


async def create_payment(
    db: AsyncSession,
    payment_data: PaymentCreate,
    institute_id: UUID,
    received_by_id: UUID | None = None,
) -> Payment:
    """Record a payment and apply it to fee allocations in one transaction."""

    async def record(session: AsyncSession) -> UUID:
        family = (
            await session.execute(
                select(Family).where(
                    Family.id == payment_data.family_id,
                    Family.institute_id == institute_id,
                )
            )
        ).scalar_one_or_none()
        if family is None:
            raise ServiceError(
                ErrorCode.FAMILY_NOT_FOUND,
                "Family not found",
                {"family_id": str(payment_data.family_id)},
            )

        plan = await _plan_allocations(session, payment_data)

        payment = Payment(
            institute_id=institute_id,
            family_id=family.id,
            amount=payment_data.amount,
            payment_method=payment_data.payment_method,
            payment_date=payment_data.payment_date or date.today(),
            reference=payment_data.reference,
            note=payment_data.note,
            received_by_id=received_by_id,
        )
        session.add(payment)

        for allocation, amount in plan:
            session.add(
                PaymentAllocation(payment=payment, fee_allocation=allocation, amount=amount)
            )
            allocation.update_status(today=payment.payment_date)

        await session.flush()
        return payment.id

    payment_id = await with_transaction(db, record, name="Payment")
    logger.info("Payment %s recorded for family %s", payment_id, payment_data.family_id)

    return await get_payment_by_id(db, payment_id)


async def delete_payment(db: AsyncSession, payment: Payment) -> None:
    """Delete a payment and recompute the status of the allocations it paid."""
    allocation_ids = [a.fee_allocation_id for a in payment.allocations]

    async def remove(session: AsyncSession) -> None:
        await session.delete(payment)
        await session.flush()

        if allocation_ids:
            result = await session.execute(
                select(FeeAllocation)
                .where(FeeAllocation.id.in_(allocation_ids))
                .options(selectinload(FeeAllocation.payment_allocations))
                .execution_options(populate_existing=True)
            )
            for allocation in result.scalars().all():
                allocation.update_status()

    await with_transaction(db, remove, name="Payment")


async def get_payment_summary(
    db: AsyncSession,
    institute_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> dict:
    """Get payment summary statistics for an institute."""
    query = select(
        Payment.payment_method,
        func.count(Payment.id).label("count"),
        func.coalesce(func.sum(Payment.amount), 0).label("total"),
    )

    if institute_id:
        query = query.where(Payment.institute_id == institute_id)
    if date_from:
        query = query.where(Payment.payment_date >= date_from)
    if date_to:
        query = query.where(Payment.payment_date <= date_to)

    result = await db.execute(query.group_by(Payment.payment_method))

    total_payments = 0
    total_amount = Decimal("0")
    by_method: dict[str, Decimal] = {}

    for row in result:
        method = row.payment_method
        if hasattr(method, "value"):
            method = method.value
        total_payments += row.count
        total_amount += Decimal(str(row.total))
        by_method[method] = Decimal(str(row.total))

    return {
        "total_payments": total_payments,
        "total_amount": total_amount,
        "by_method": by_method,
    }
