"""Notification service - fee reminders and bill notices sent to families."""

import logging
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.student import Student

logger = logging.getLogger(__name__)

OPEN_STATUSES = (AllocationStatus.PENDING, AllocationStatus.PARTIAL)


class ReminderType(str, Enum):
    """Which allocations a reminder run targets."""

    EARLY = "early"  # Falling due within the look-ahead window
    DUE = "due"  # Due today
    OVERDUE = "overdue"  # Past due and unpaid


@dataclass
class Notification:
    to: str
    subject: str
    message: str
    channel: str = "email"
    metadata: dict[str, Any] = field(default_factory=dict)


class NotificationSender(Protocol):
    async def send(self, notification: Notification) -> None: ...


class LoggingSender:
    """Writes notifications to the log instead of delivering them."""

    async def send(self, notification: Notification) -> None:
        logger.info(
            "[%s] to=%s subject=%r: %s",
            notification.channel,
            notification.to,
            notification.subject,
            notification.message,
        )


default_sender = LoggingSender()


def _reminder_filter(reminder_type: ReminderType, today: date):
    if reminder_type == ReminderType.EARLY:
        horizon = today + timedelta(days=settings.FEE_REMINDER_EARLY_DAYS)
        return (
            FeeAllocation.status.in_(OPEN_STATUSES),
            FeeAllocation.due_date > today,
            FeeAllocation.due_date <= horizon,
        )
    if reminder_type == ReminderType.DUE:
        return (FeeAllocation.status.in_(OPEN_STATUSES), FeeAllocation.due_date == today)
    return (
        FeeAllocation.status.in_((*OPEN_STATUSES, AllocationStatus.OVERDUE)),
        FeeAllocation.due_date < today,
    )


async def get_reminder_allocations(
    db: AsyncSession,
    reminder_type: ReminderType,
    institute_id: UUID | None = None,
    today: date | None = None,
) -> list[FeeAllocation]:
    """Allocations of active students that a reminder run should cover, oldest first."""
    today = today or date.today()
    query = (
        select(FeeAllocation)
        .join(Student, FeeAllocation.student_id == Student.id)
        .where(Student.is_active.is_(True), *_reminder_filter(reminder_type, today))
        .options(
            selectinload(FeeAllocation.student).selectinload(Student.family),
            selectinload(FeeAllocation.payment_allocations),
        )
        .order_by(FeeAllocation.due_date.asc(), FeeAllocation.created_at.asc())
    )
    if institute_id is not None:
        query = query.where(FeeAllocation.institute_id == institute_id)

    result = await db.execute(query)
    return list(result.scalars().all())


def build_fee_reminder(
    allocation: FeeAllocation,
    reminder_type: ReminderType,
    today: date,
) -> Notification | None:
    """Reminder for the allocation's family, or None when it has no email."""
    student = allocation.student
    family = student.family
    if not family.email:
        return None

    amount = allocation.remaining_amount
    due = allocation.due_date.strftime("%d %b %Y")
    if reminder_type == ReminderType.OVERDUE:
        days = (today - allocation.due_date).days
        subject = f"Overdue fee - {student.name}"
        message = (
            f"Dear {family.name}, the monthly fee of {amount} for {student.name} was due on "
            f"{due} and is {days} days overdue. Please make the payment as soon as possible."
        )
    else:
        subject = f"Fee reminder - {student.name}"
        message = (
            f"Dear {family.name}, this is a reminder that the monthly fee of {amount} for "
            f"{student.name} is due on {due}. Please make the payment at your earliest "
            "convenience."
        )

    return Notification(
        to=family.email,
        subject=subject,
        message=message,
        metadata={
            "reminder_type": reminder_type.value,
            "fee_allocation_id": str(allocation.id),
            "student_name": student.name,
            "amount": str(amount),
            "due_date": allocation.due_date.isoformat(),
        },
    )


async def send_fee_reminders(
    db: AsyncSession,
    reminder_type: ReminderType,
    institute_id: UUID | None = None,
    today: date | None = None,
    sender: NotificationSender | None = None,
) -> dict[str, Any]:
    """
    Send one reminder per matching allocation.

    A family without an email address, or a sender error, counts as a
    failed reminder and the run carries on with the next allocation.
    """
    started = time.perf_counter()
    today = today or date.today()
    sender = sender or default_sender

    allocations = await get_reminder_allocations(db, reminder_type, institute_id, today)
    sent = 0
    errors: list[dict[str, str]] = []

    for allocation in allocations:
        notification = build_fee_reminder(allocation, reminder_type, today)
        if notification is None:
            errors.append(
                {"fee_allocation_id": str(allocation.id), "error": "Family has no email address"}
            )
            continue
        try:
            await sender.send(notification)
        except Exception as exc:
            logger.exception("Fee reminder for allocation %s failed", allocation.id)
            errors.append({"fee_allocation_id": str(allocation.id), "error": str(exc)})
            continue
        sent += 1

    logger.info(
        "Fee reminders (%s): %d sent, %d failed of %d allocations",
        reminder_type.value,
        sent,
        len(errors),
        len(allocations),
    )

    return {
        "reminder_type": reminder_type,
        "total_allocations": len(allocations),
        "sent": sent,
        "failed": len(errors),
        "errors": errors,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
    }


async def get_overdue_summary(
    db: AsyncSession,
    institute_id: UUID | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Totals behind the overdue reminder run."""
    allocations = await get_reminder_allocations(db, ReminderType.OVERDUE, institute_id, today)
    return {
        "total_overdue": len(allocations),
        "total_amount": sum((a.remaining_amount for a in allocations), Decimal(0)),
        "affected_families": len({a.student.family_id for a in allocations}),
        "oldest_due_date": allocations[0].due_date if allocations else None,
    }


async def send_bill_notifications(
    db: AsyncSession,
    institute_id: UUID,
    month: int,
    year: int,
    sender: NotificationSender | None = None,
) -> int:
    """Tell each family about the allocations generated for a month."""
    sender = sender or default_sender
    result = await db.execute(
        select(FeeAllocation)
        .where(
            FeeAllocation.institute_id == institute_id,
            FeeAllocation.month == date(year, month, 1),
            FeeAllocation.status != AllocationStatus.PAID,
        )
        .options(selectinload(FeeAllocation.student).selectinload(Student.family))
    )

    label = date(year, month, 1).strftime("%B %Y")
    sent = 0
    for allocation in result.scalars().all():
        student = allocation.student
        if not student.family.email:
            continue
        await sender.send(
            Notification(
                to=student.family.email,
                subject=f"Monthly bill - {student.name} ({label})",
                message=(
                    f"Dear {student.family.name}, the bill for {student.name} for {label} is "
                    f"{allocation.net_amount}, due on {allocation.due_date}. Please log in to "
                    "the parent portal to view details."
                ),
                metadata={"fee_allocation_id": str(allocation.id), "month": month, "year": year},
            )
        )
        sent += 1
    return sent
