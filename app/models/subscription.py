"""Student subscription model."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class StudentSubscription(BaseModel):
    """Student enrolled in a course or subscribed to a service."""

    __tablename__ = "student_subscriptions"
    __table_args__ = (
        CheckConstraint(
            "(course_id IS NULL) <> (service_id IS NULL)",
            name="ck_student_subscriptions_one_target",
        ),
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
    course_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=True,
    )
    service_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=True,
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=0,
        server_default="0",
    )  # Monthly discount on this item
    start_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    end_date: Mapped[date | None] = mapped_column(Date)  # NULL while active

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="subscriptions")
    course: Mapped["Course | None"] = relationship("Course", back_populates="subscriptions")
    service: Mapped["Service | None"] = relationship("Service", back_populates="subscriptions")

    @property
    def is_active(self) -> bool:
        return self.end_date is None

    def __repr__(self) -> str:
        return f"<StudentSubscription(id={self.id}, student={self.student_id})>"
