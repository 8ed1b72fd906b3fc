"""Report service - business logic for generating reports."""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.family import Family
from app.models.fee import FeeAllocation
from app.models.payment import Payment, PaymentAllocation
from app.models.student import Student
from app.models.subscription import StudentSubscription
from app.services.student import StudentService

ZERO = Decimal("0")


def _scoped(query, column, institute_id: UUID | None):
    if institute_id is not None:
        query = query.where(column == institute_id)
    return query


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def _month_keys(date_from: date, date_to: date) -> list[str]:
    keys = []
    current = date_from.replace(day=1)
    while current <= date_to:
        keys.append(current.strftime("%Y-%m"))
        current = (current + timedelta(days=32)).replace(day=1)
    return keys


async def get_financial_summary(
    db: AsyncSession,
    institute_id: UUID | None,
    date_from: date,
    date_to: date,
) -> dict:
    """Generate financial summary for an institute within a date range."""
    month_from = date_from.replace(day=1)

    # Allocations billed for months in the period
    allocation_filter = (
        FeeAllocation.month >= month_from,
        FeeAllocation.month <= date_to,
    )
    billed_query = _scoped(
        select(func.coalesce(func.sum(FeeAllocation.net_amount), 0)).where(*allocation_filter),
        FeeAllocation.institute_id,
        institute_id,
    )
    total_billed = _decimal((await db.execute(billed_query)).scalar())

    # Amount of those allocations already paid
    paid_query = _scoped(
        select(func.coalesce(func.sum(PaymentAllocation.amount), 0))
        .join(FeeAllocation, PaymentAllocation.fee_allocation_id == FeeAllocation.id)
        .where(*allocation_filter),
        FeeAllocation.institute_id,
        institute_id,
    )
    total_allocated = _decimal((await db.execute(paid_query)).scalar())

    # Get allocation counts by status
    status_query = _scoped(
        select(FeeAllocation.status, func.count(FeeAllocation.id).label("count"))
        .where(*allocation_filter)
        .group_by(FeeAllocation.status),
        FeeAllocation.institute_id,
        institute_id,
    )
    status_counts = {"pending": 0, "partial": 0, "paid": 0, "overdue": 0}
    for row in await db.execute(status_query):
        status = row.status
        if hasattr(status, "value"):
            status = status.value
        status_counts[status.lower()] = row.count

    # Get payments received in the period
    payment_query = _scoped(
        select(Payment.payment_date, Payment.payment_method, Payment.amount).where(
            Payment.payment_date >= date_from,
            Payment.payment_date <= date_to,
        ),
        Payment.institute_id,
        institute_id,
    )
    total_collected = ZERO
    total_payments = 0
    by_payment_method: dict[str, Decimal] = defaultdict(lambda: ZERO)
    collected_by_month: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for row in await db.execute(payment_query):
        method = row.payment_method
        if hasattr(method, "value"):
            method = method.value
        amount = _decimal(row.amount)
        total_payments += 1
        total_collected += amount
        by_payment_method[method] += amount
        collected_by_month[row.payment_date.strftime("%Y-%m")] += amount

    # Monthly trend is bucketed in Python to stay portable across databases
    billed_by_month: dict[str, Decimal] = defaultdict(lambda: ZERO)
    billed_rows = _scoped(
        select(FeeAllocation.month, FeeAllocation.net_amount).where(*allocation_filter),
        FeeAllocation.institute_id,
        institute_id,
    )
    for row in await db.execute(billed_rows):
        billed_by_month[row.month.strftime("%Y-%m")] += _decimal(row.net_amount)

    monthly_trend = [
        {
            "month": key,
            "collected": collected_by_month.get(key, ZERO),
            "billed": billed_by_month.get(key, ZERO),
        }
        for key in _month_keys(date_from, date_to)
    ]

    collection_rate = ZERO
    if total_billed > 0:
        collection_rate = (total_allocated / total_billed * 100).quantize(Decimal("0.01"))

    return {
        "institute_id": institute_id,
        "date_from": date_from,
        "date_to": date_to,
        "total_billed": total_billed,
        "total_collected": total_collected,
        "total_outstanding": max(ZERO, total_billed - total_allocated),
        "collection_rate": collection_rate,
        "by_payment_method": dict(by_payment_method),
        "allocation_status_counts": status_counts,
        "total_payments": total_payments,
        "monthly_trend": monthly_trend,
    }


async def get_student_report(db: AsyncSession, institute_id: UUID | None) -> dict:
    """Enrolment figures for an institute."""
    stats = (await StudentService(db, institute_id).get_statistics()).unwrap()

    families_query = _scoped(
        select(func.count(Family.id)).where(Family.is_active.is_(True)),
        Family.institute_id,
        institute_id,
    )
    subscriptions_query = _scoped(
        select(func.count(StudentSubscription.id)).where(StudentSubscription.end_date.is_(None)),
        StudentSubscription.institute_id,
        institute_id,
    )

    return {
        "institute_id": institute_id,
        "total_students": stats["total"],
        "active_students": stats["active"],
        "inactive_students": stats["inactive"],
        "by_grade": stats["by_grade"],
        "recent_enrollments": stats["recent_enrollments"],
        "total_families": (await db.execute(families_query)).scalar() or 0,
        "active_subscriptions": (await db.execute(subscriptions_query)).scalar() or 0,
    }


async def get_family_balances(db: AsyncSession, institute_id: UUID | None) -> list[dict]:
    """Billed, paid and outstanding totals per active family."""
    families = (
        await db.execute(
            _scoped(
                select(Family.id, Family.name).where(Family.is_active.is_(True)),
                Family.institute_id,
                institute_id,
            )
        )
    ).all()

    student_counts = dict(
        (
            await db.execute(
                select(Student.family_id, func.count(Student.id))
                .where(Student.is_active.is_(True))
                .group_by(Student.family_id)
            )
        ).all()
    )
    billed = dict(
        (
            await db.execute(
                select(Student.family_id, func.sum(FeeAllocation.net_amount))
                .join(Student, FeeAllocation.student_id == Student.id)
                .group_by(Student.family_id)
            )
        ).all()
    )
    allocated = dict(
        (
            await db.execute(
                select(Student.family_id, func.sum(PaymentAllocation.amount))
                .join(FeeAllocation, PaymentAllocation.fee_allocation_id == FeeAllocation.id)
                .join(Student, FeeAllocation.student_id == Student.id)
                .group_by(Student.family_id)
            )
        ).all()
    )
    payments = {
        row.family_id: row
        for row in await db.execute(
            select(
                Payment.family_id,
                func.sum(Payment.amount).label("total"),
                func.max(Payment.payment_date).label("last_date"),
            ).group_by(Payment.family_id)
        )
    }

    balances = []
    for family_id, name in families:
        total_billed = _decimal(billed.get(family_id))
        payment_row = payments.get(family_id)
        balances.append(
            {
                "family_id": family_id,
                "family_name": name,
                "student_count": student_counts.get(family_id, 0),
                "total_billed": total_billed,
                "total_paid": _decimal(payment_row.total) if payment_row else ZERO,
                "outstanding": max(ZERO, total_billed - _decimal(allocated.get(family_id))),
                "last_payment_date": payment_row.last_date if payment_row else None,
            }
        )

    return sorted(balances, key=lambda b: b["family_name"])


async def get_family_fee_report(db: AsyncSession, institute_id: UUID | None) -> dict:
    families = await get_family_balances(db, institute_id)
    return {
        "institute_id": institute_id,
        "families": families,
        "total_billed": sum((f["total_billed"] for f in families), ZERO),
        "total_paid": sum((f["total_paid"] for f in families), ZERO),
        "total_outstanding": sum((f["outstanding"] for f in families), ZERO),
    }


async def get_outstanding_report(
    db: AsyncSession,
    institute_id: UUID | None,
    limit: int = 10,
) -> dict:
    """Families with the largest unpaid balances."""
    families = [f for f in await get_family_balances(db, institute_id) if f["outstanding"] > 0]
    families.sort(key=lambda f: f["outstanding"], reverse=True)
    return {"institute_id": institute_id, "top_families": families[:limit]}

