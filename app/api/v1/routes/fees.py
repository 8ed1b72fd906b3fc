"""Fee calculation and allocation routes."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.models.fee import AllocationStatus
from app.models.user import User
from app.schemas.fee import (
    FamilyFeeSummary,
    FeeAllocationListResponse,
    FeeAllocationResponse,
    GenerateAllocationsRequest,
    GenerateAllocationsResult,
    MarkOverdueResult,
    StudentFeeBreakdown,
)
from app.services import fee as fee_service

router = APIRouter(
    prefix="/fees",
    tags=["Fees"],
    dependencies=[Depends(require_module("fee-management"))],
)

FeeReader = Annotated[User, Depends(require_permission("fees:read"))]
FeeWriter = Annotated[User, Depends(require_permission("fees:write"))]


# ============== Allocations ==============


@router.get("/allocations", response_model=FeeAllocationListResponse)
async def list_allocations(
    db: DbSession,
    current_user: FeeReader,
    institute_id: UUID | None = Query(None, description="Filter by institute (superadmin)"),
    student_id: UUID | None = Query(None),
    family_id: UUID | None = Query(None),
    status: AllocationStatus | None = Query(None, description="Filter by status"),
    month: int | None = Query(None, ge=1, le=12),
    year: int | None = Query(None, ge=2000, le=2100),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
) -> FeeAllocationListResponse:
    """List fee allocations, oldest month first."""
    allocations, total = await fee_service.get_allocations(
        db,
        institute_id=resolve_institute_id(current_user, institute_id),
        student_id=student_id,
        family_id=family_id,
        status=status,
        month=month,
        year=year,
        skip=skip,
        limit=limit,
    )

    return FeeAllocationListResponse(
        items=[FeeAllocationResponse.model_validate(a) for a in allocations],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/allocations/{allocation_id}", response_model=FeeAllocationResponse)
async def get_allocation(
    allocation_id: UUID,
    db: DbSession,
    current_user: FeeReader,
) -> FeeAllocationResponse:
    allocation = await fee_service.get_allocation_by_id(
        db, allocation_id, resolve_institute_id(current_user, None)
    )
    if not allocation:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Fee allocation not found",
        )
    return FeeAllocationResponse.model_validate(allocation)


@router.post("/generate", response_model=GenerateAllocationsResult)
async def generate_allocations(
    request: GenerateAllocationsRequest,
    db: DbSession,
    current_user: FeeWriter,
) -> GenerateAllocationsResult:
    """
    Create or refresh the allocations of one month.

    Only students with active subscriptions are billed. Paid allocations
    are left as they are.
    """
    institute_id = resolve_institute_id(current_user, request.institute_id)
    if institute_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="institute_id is required",
        )

    result = await fee_service.generate_monthly_allocations(
        db,
        institute_id,
        request.month,
        request.year,
        request.student_ids,
    )
    return GenerateAllocationsResult.model_validate(result)


@router.post("/mark-overdue", response_model=MarkOverdueResult)
async def mark_overdue(
    db: DbSession,
    current_user: FeeWriter,
    institute_id: UUID | None = Query(None),
    today: date | None = Query(None, description="Reference date, defaults to today"),
) -> MarkOverdueResult:
    """Flag pending allocations past their due date as overdue."""
    updated = await fee_service.mark_overdue_allocations(
        db, resolve_institute_id(current_user, institute_id), today
    )
    return MarkOverdueResult(updated=updated)


# ============== Calculation ==============


@router.get("/calculate/student/{student_id}", response_model=StudentFeeBreakdown)
async def calculate_student_fee(
    student_id: UUID,
    db: DbSession,
    current_user: FeeReader,
) -> StudentFeeBreakdown:
    breakdown = await fee_service.calculate_student_monthly_fee(
        db, student_id, resolve_institute_id(current_user, None)
    )
    return StudentFeeBreakdown.model_validate(breakdown)


@router.get("/calculate/family/{family_id}", response_model=FamilyFeeSummary)
async def calculate_family_fee(
    family_id: UUID,
    db: DbSession,
    current_user: FeeReader,
) -> FamilyFeeSummary:
    summary = await fee_service.calculate_family_fees(
        db, family_id, resolve_institute_id(current_user, None)
    )
    return FamilyFeeSummary.model_validate(summary)
