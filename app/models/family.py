"""Family model."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class Family(BaseModel):
    """A household paying fees for one or more students."""

    __tablename__ = "families"

    institute_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500))
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=0,
        server_default="0",
    )  # Monthly discount shared between the family's students
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    institute: Mapped["Institute"] = relationship("Institute", back_populates="families")
    students: Mapped[list["Student"]] = relationship("Student", back_populates="family")
    payments: Mapped[list["Payment"]] = relationship("Payment", back_populates="family")
    parents: Mapped[list["User"]] = relationship("User", back_populates="family")

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name={self.name})>"
