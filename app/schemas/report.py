"""Report schemas."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


# ============== Financial Summary ==============


class AllocationStatusCount(BaseModel):
    """Count of fee allocations by status."""

    pending: int = 0
    partial: int = 0
    paid: int = 0
    overdue: int = 0


class MonthlyCollection(BaseModel):
    """Collections for a single month."""

    month: str = Field(description="YYYY-MM format")
    collected: Decimal
    billed: Decimal


class FinancialSummary(BaseModel):
    """Overall financial summary for a period."""

    institute_id: UUID | None
    date_from: date
    date_to: date

    total_billed: Decimal = Field(description="Net amount of allocations in the period")
    total_collected: Decimal = Field(description="Total payments received")
    total_outstanding: Decimal = Field(description="Remaining unpaid amount")
    collection_rate: Decimal = Field(description="Percentage of billed amount collected")
    by_payment_method: dict[str, Decimal]
    allocation_status_counts: AllocationStatusCount
    total_payments: int
    monthly_trend: list[MonthlyCollection]


# ============== Student Reports ==============


class StudentReport(BaseModel):
    """Enrolment figures."""

    institute_id: UUID | None
    total_students: int
    active_students: int
    inactive_students: int
    by_grade: dict[str, int]
    recent_enrollments: int
    total_families: int
    active_subscriptions: int


# ============== Family Reports ==============


class FamilyBalance(BaseModel):
    """Billed, paid and outstanding totals for a family."""

    family_id: UUID
    family_name: str
    student_count: int
    total_billed: Decimal
    total_paid: Decimal
    outstanding: Decimal
    last_payment_date: date | None


class FamilyFeeReport(BaseModel):
    institute_id: UUID | None
    families: list[FamilyBalance]
    total_billed: Decimal
    total_paid: Decimal
    total_outstanding: Decimal


class OutstandingReport(BaseModel):
    """Families with the largest unpaid balances."""

    institute_id: UUID | None
    top_families: list[FamilyBalance]
