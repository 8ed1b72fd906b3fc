"""Payment models."""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class PaymentMethod(str, Enum):
    """How payment was received."""

    CASH = "CASH"
    CARD = "CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    UPI = "UPI"
    CHEQUE = "CHEQUE"


class Payment(BaseModel):
    """Money received from a family."""

    __tablename__ = "payments"

    institute_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    family_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("families.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentMethod.CASH,
    )
    reference: Mapped[str | None] = mapped_column(String(100))
    note: Mapped[str | None] = mapped_column(Text)
    received_by_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )  # User who recorded the payment

    # Relationships
    family: Mapped["Family"] = relationship("Family", back_populates="payments")
    received_by: Mapped["User | None"] = relationship("User", back_populates="received_payments")
    allocations: Mapped[list["PaymentAllocation"]] = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan",
    )

    @property
    def allocated_amount(self) -> Decimal:
        return sum((a.amount for a in self.allocations), Decimal(0))

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount})>"


class PaymentAllocation(BaseModel):
    """Part of a payment applied to one fee allocation."""

    __tablename__ = "payment_allocations"

    payment_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fee_allocation_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("fee_allocations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Relationships
    payment: Mapped["Payment"] = relationship("Payment", back_populates="allocations")
    fee_allocation: Mapped["FeeAllocation"] = relationship(
        "FeeAllocation", back_populates="payment_allocations"
    )

    def __repr__(self) -> str:
        return f"<PaymentAllocation(payment={self.payment_id}, amount={self.amount})>"
