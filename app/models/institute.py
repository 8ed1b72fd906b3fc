"""Institute model."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class Institute(BaseModel):
    """Institute model - represents a tenant in the system."""

    __tablename__ = "institutes"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500))
    phone: Mapped[str | None] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    users: Mapped[list["User"]] = relationship("User", back_populates="institute")
    families: Mapped[list["Family"]] = relationship("Family", back_populates="institute")
    students: Mapped[list["Student"]] = relationship("Student", back_populates="institute")
    courses: Mapped[list["Course"]] = relationship("Course", back_populates="institute")

    def __repr__(self) -> str:
        return f"<Institute(id={self.id}, name={self.name})>"
