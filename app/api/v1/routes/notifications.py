"""Fee reminder routes."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.models.user import User
from app.schemas.notification import (
    BillNotificationRequest,
    BillNotificationResult,
    FeeReminderRequest,
    FeeReminderResult,
    OverdueSummary,
)
from app.services import notification as notification_service
from app.services.notification import NotificationSender

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
    dependencies=[Depends(require_module("communication"))],
)

FeeReader = Annotated[User, Depends(require_permission("fees:read"))]
FeeWriter = Annotated[User, Depends(require_permission("fees:write"))]


def get_sender() -> NotificationSender:
    """Delivery backend for notifications. Override to plug in a real one."""
    return notification_service.default_sender


Sender = Annotated[NotificationSender, Depends(get_sender)]


@router.post("/fee-reminders", response_model=FeeReminderResult)
async def send_fee_reminders(
    request: FeeReminderRequest,
    db: DbSession,
    current_user: FeeWriter,
    sender: Sender,
) -> FeeReminderResult:
    """
    Remind families about fees.

    `early` covers allocations falling due within FEE_REMINDER_EARLY_DAYS,
    `due` those due today and `overdue` those past their due date.
    """
    result = await notification_service.send_fee_reminders(
        db,
        request.reminder_type,
        institute_id=resolve_institute_id(current_user, request.institute_id),
        today=request.today,
        sender=sender,
    )
    return FeeReminderResult.model_validate(result)


@router.get("/fee-reminders/summary", response_model=OverdueSummary)
async def overdue_summary(
    db: DbSession,
    current_user: FeeReader,
    institute_id: UUID | None = Query(None, description="Filter by institute (superadmin)"),
    today: date | None = Query(None, description="Reference date, defaults to today"),
) -> OverdueSummary:
    summary = await notification_service.get_overdue_summary(
        db, resolve_institute_id(current_user, institute_id), today
    )
    return OverdueSummary.model_validate(summary)


@router.post("/bills", response_model=BillNotificationResult)
async def send_bill_notifications(
    request: BillNotificationRequest,
    db: DbSession,
    current_user: FeeWriter,
    sender: Sender,
) -> BillNotificationResult:
    """Tell families about the unpaid allocations of a month."""
    institute_id = resolve_institute_id(current_user, request.institute_id)
    if institute_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="institute_id is required",
        )

    sent = await notification_service.send_bill_notifications(
        db, institute_id, request.month, request.year, sender=sender
    )
    return BillNotificationResult(sent=sent)
