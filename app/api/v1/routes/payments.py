"""Payment routes."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import DbSession, require_module, require_permission, resolve_institute_id
from app.models.payment import PaymentMethod
from app.models.user import User
from app.schemas.payment import (
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    PaymentSummary,
)
from app.services import payment as payment_service

router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
    dependencies=[Depends(require_module("fee-management"))],
)

PaymentReader = Annotated[User, Depends(require_permission("payments:read"))]
PaymentWriter = Annotated[User, Depends(require_permission("payments:write"))]


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    db: DbSession,
    current_user: PaymentReader,
    institute_id: UUID | None = Query(None, description="Filter by institute (superadmin)"),
    family_id: UUID | None = Query(None, description="Filter by family"),
    student_id: UUID | None = Query(None, description="Payments applied to a student's fees"),
    payment_method: PaymentMethod | None = Query(None, description="Filter by payment method"),
    date_from: date | None = Query(None, description="Filter from date"),
    date_to: date | None = Query(None, description="Filter to date"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
) -> PaymentListResponse:
    """List payments, newest first."""
    payments, total = await payment_service.get_payments(
        db,
        institute_id=resolve_institute_id(current_user, institute_id),
        family_id=family_id,
        student_id=student_id,
        payment_method=payment_method,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )

    return PaymentListResponse(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_data: PaymentCreate,
    db: DbSession,
    current_user: PaymentWriter,
    institute_id: UUID | None = Query(None, description="Target institute (superadmin)"),
) -> PaymentResponse:
    """
    Record a payment for a family.

    Amounts can be applied to explicit fee allocations, or with
    `auto_allocate` to the family's oldest unpaid allocations.
    """
    institute_id = resolve_institute_id(current_user, institute_id)
    if institute_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="institute_id is required",
        )

    payment = await payment_service.create_payment(
        db, payment_data, institute_id, received_by_id=current_user.id
    )
    return PaymentResponse.model_validate(payment)


@router.get("/summary", response_model=PaymentSummary)
async def get_payment_summary(
    db: DbSession,
    current_user: PaymentReader,
    institute_id: UUID | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
) -> PaymentSummary:
    """Totals by payment method."""
    summary = await payment_service.get_payment_summary(
        db,
        institute_id=resolve_institute_id(current_user, institute_id),
        date_from=date_from,
        date_to=date_to,
    )
    return PaymentSummary(**summary)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    db: DbSession,
    current_user: PaymentReader,
) -> PaymentResponse:
    payment = await payment_service.get_payment_by_id(
        db, payment_id, resolve_institute_id(current_user, None)
    )
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment not found",
        )
    return PaymentResponse.model_validate(payment)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: UUID,
    db: DbSession,
    current_user: PaymentWriter,
) -> None:
    """Delete a payment; the allocations it paid are reopened."""
    payment = await payment_service.get_payment_by_id(
        db, payment_id, resolve_institute_id(current_user, None)
    )
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment not found",
        )

    await payment_service.delete_payment(db, payment)
