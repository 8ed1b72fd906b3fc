"""Student model."""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class Student(BaseModel):
    """Student model - fees are billed per student, paid per family."""

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("institute_id", "student_code", name="uq_students_institute_code"),
    )

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
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    grade: Mapped[str | None] = mapped_column(String(50))
    date_of_birth: Mapped[date | None] = mapped_column(Date)
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    student_code: Mapped[str | None] = mapped_column(String(50))  # Institute-issued ID
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    institute: Mapped["Institute"] = relationship("Institute", back_populates="students")
    family: Mapped["Family"] = relationship("Family", back_populates="students")
    subscriptions: Mapped[list["StudentSubscription"]] = relationship(
        "StudentSubscription", back_populates="student"
    )
    fee_allocations: Mapped[list["FeeAllocation"]] = relationship(
        "FeeAllocation", back_populates="student"
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, name={self.name})>"
