"""Course, service and fee structure models."""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class BillingCycle(str, Enum):
    """How often a fee is charged."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    HALF_YEARLY = "HALF_YEARLY"
    YEARLY = "YEARLY"


class Course(BaseModel):
    """A class offered by the institute."""

    __tablename__ = "courses"

    institute_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    grade: Mapped[str | None] = mapped_column(String(50))
    capacity: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    institute: Mapped["Institute"] = relationship("Institute", back_populates="courses")
    teacher: Mapped["User | None"] = relationship("User", back_populates="courses_taught")
    fee_structure: Mapped["FeeStructure | None"] = relationship(
        "FeeStructure",
        back_populates="course",
        uselist=False,
        cascade="all, delete-orphan",
    )
    subscriptions: Mapped[list["StudentSubscription"]] = relationship(
        "StudentSubscription", back_populates="course"
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, name={self.name})>"


class Service(BaseModel):
    """A non-course offering such as transport or meals."""

    __tablename__ = "services"

    institute_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    fee_structure: Mapped["FeeStructure | None"] = relationship(
        "FeeStructure",
        back_populates="service",
        uselist=False,
        cascade="all, delete-orphan",
    )
    subscriptions: Mapped[list["StudentSubscription"]] = relationship(
        "StudentSubscription", back_populates="service"
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name})>"


class FeeStructure(BaseModel):
    """Price of a course or a service."""

    __tablename__ = "fee_structures"
    __table_args__ = (
        CheckConstraint(
            "(course_id IS NULL) <> (service_id IS NULL)",
            name="ck_fee_structures_one_target",
        ),
    )

    institute_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("courses.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    service_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("services.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        String(20),
        nullable=False,
        default=BillingCycle.MONTHLY,
        server_default="MONTHLY",
    )

    # Relationships
    course: Mapped["Course | None"] = relationship("Course", back_populates="fee_structure")
    service: Mapped["Service | None"] = relationship("Service", back_populates="fee_structure")

    def __repr__(self) -> str:
        return f"<FeeStructure(id={self.id}, amount={self.amount}, cycle={self.billing_cycle})>"
