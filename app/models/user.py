"""User model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel
from app.core.permissions import Role


class User(BaseModel):
    """User model for authentication and authorization."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[Role] = mapped_column(
        String(20),
        nullable=False,
        default=Role.ADMIN,
    )
    institute_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=True,  # NULL for superadmins
        index=True,
    )
    family_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("families.id", ondelete="SET NULL"),
        nullable=True,  # Parents only
    )
    student_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="SET NULL"),
        nullable=True,  # Student accounts only
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    institute: Mapped["Institute | None"] = relationship("Institute", back_populates="users")
    family: Mapped["Family | None"] = relationship("Family", back_populates="parents")
    student: Mapped["Student | None"] = relationship("Student")
    courses_taught: Mapped[list["Course"]] = relationship("Course", back_populates="teacher")
    received_payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="received_by"
    )

    @property
    def is_superadmin(self) -> bool:
        """Check if user operates the whole platform."""
        return self.role == Role.SUPERADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
