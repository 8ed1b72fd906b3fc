"""Monthly fee allocation model."""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class AllocationStatus(str, Enum):
    """Fee allocation payment status."""

    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class FeeAllocation(BaseModel):
    """A student's computed fee for one month."""

    __tablename__ = "fee_allocations"
    __table_args__ = (
        UniqueConstraint("student_id", "month", "year", name="uq_fee_allocations_student_month"),
    )

    institute_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[date] = mapped_column(Date, nullable=False)  # First day of the month
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Amounts
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=0,
        server_default="0",
    )
    net_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    status: Mapped[AllocationStatus] = mapped_column(
        String(20),
        default=AllocationStatus.PENDING,
        server_default="PENDING",
    )
    due_date: Mapped[date | None] = mapped_column(Date)
    paid_date: Mapped[date | None] = mapped_column(Date)

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="fee_allocations")
    payment_allocations: Mapped[list["PaymentAllocation"]] = relationship(
        "PaymentAllocation", back_populates="fee_allocation"
    )

    @property
    def paid_amount(self) -> Decimal:
        """Sum of all payment allocations."""
        return sum((a.amount for a in self.payment_allocations), Decimal(0))

    @property
    def remaining_amount(self) -> Decimal:
        """Amount still owed."""
        return max(Decimal(0), self.net_amount - self.paid_amount)

    def update_status(self, today: date | None = None) -> None:
        """Update status and paid date from allocated payments."""
        today = today or date.today()
        paid = self.paid_amount
        if paid >= self.net_amount:
            self.status = AllocationStatus.PAID
            self.paid_date = self.paid_date or today
        elif paid > 0:
            self.status = AllocationStatus.PARTIAL
            self.paid_date = None
        elif self.due_date and today > self.due_date:
            self.status = AllocationStatus.OVERDUE
            self.paid_date = None
        else:
            self.status = AllocationStatus.PENDING
            self.paid_date = None

    def __repr__(self) -> str:
        return f"<FeeAllocation(id={self.id}, student={self.student_id}, status={self.status})>"
