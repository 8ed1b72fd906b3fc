"""Report API routes."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.models.user import User
from app.schemas.report import (
    FamilyFeeReport,
    FinancialSummary,
    OutstandingReport,
    StudentReport,
)
from app.services import report as report_service

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    dependencies=[Depends(require_module("reporting"))],
)

ReportReader = Annotated[User, Depends(require_permission("reports:read"))]


@router.get("/financial", response_model=FinancialSummary)
async def get_financial_summary(
    db: DbSession,
    current_user: ReportReader,
    institute_id: UUID | None = Query(None, description="Institute (superadmin)"),
    date_from: date | None = Query(None, description="Start date, defaults to January 1st"),
    date_to: date | None = Query(None, description="End date, defaults to today"),
) -> FinancialSummary:
    """
    Financial summary for a period.

    Billed and outstanding amounts count allocations whose month falls in
    the period; collections count payments received in it.
    """
    date_to = date_to or date.today()
    date_from = date_from or date_to.replace(month=1, day=1)

    if date_to < date_from:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date_to must be after date_from",
        )

    summary = await report_service.get_financial_summary(
        db, resolve_institute_id(current_user, institute_id), date_from, date_to
    )
    return FinancialSummary(**summary)


@router.get("/students", response_model=StudentReport)
async def get_student_report(
    db: DbSession,
    current_user: ReportReader,
    institute_id: UUID | None = Query(None),
) -> StudentReport:
    report = await report_service.get_student_report(
        db, resolve_institute_id(current_user, institute_id)
    )
    return StudentReport(**report)


@router.get("/families", response_model=FamilyFeeReport)
async def get_family_report(
    db: DbSession,
    current_user: ReportReader,
    institute_id: UUID | None = Query(None),
) -> FamilyFeeReport:
    """Billed, paid and outstanding totals per family."""
    report = await report_service.get_family_fee_report(
        db, resolve_institute_id(current_user, institute_id)
    )
    return FamilyFeeReport(**report)


@router.get("/outstanding", response_model=OutstandingReport)
async def get_outstanding_report(
    db: DbSession,
    current_user: ReportReader,
    institute_id: UUID | None = Query(None),
    limit: int = Query(10, ge=1, le=100, description="Number of families"),
) -> OutstandingReport:
    """Families with the largest unpaid balances."""
    report = await report_service.get_outstanding_report(
        db, resolve_institute_id(current_user, institute_id), limit
    )
    return OutstandingReport(**report)
