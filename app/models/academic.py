"""Academic log, assignment and submission models."""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class AcademicLogType(str, Enum):
    """Kind of note a teacher keeps about a student."""

    ACHIEVEMENT = "ACHIEVEMENT"
    PROGRESS = "PROGRESS"
    CONCERN = "CONCERN"


class AssignmentType(str, Enum):
    HOMEWORK = "HOMEWORK"
    PROJECT = "PROJECT"
    QUIZ = "QUIZ"
    EXAM = "EXAM"
    NOTE = "NOTE"


class AssignmentPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class SubmissionStatus(str, Enum):
    """Where a submission is in its review."""

    SUBMITTED = "SUBMITTED"
    LATE = "LATE"  # Handed in after the due date
    GRADED = "GRADED"


class AcademicLog(BaseModel):
    """Teacher's note on a student's progress, achievements or concerns."""

    __tablename__ = "academic_logs"

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
    teacher_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    log_type: Mapped[AcademicLogType] = mapped_column(
        String(20),
        nullable=False,
        default=AcademicLogType.PROGRESS,
    )
    subject: Mapped[str | None] = mapped_column(String(100))
    is_private: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default="false",
    )  # Hidden from parents and students

    # Relationships
    student: Mapped["Student"] = relationship("Student")
    teacher: Mapped["User | None"] = relationship("User")

    def __repr__(self) -> str:
        return f"<AcademicLog(id={self.id}, type={self.log_type})>"


class Assignment(BaseModel):
    """Work set for a whole grade or for a single student."""

    __tablename__ = "assignments"

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
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    assignment_type: Mapped[AssignmentType] = mapped_column(
        String(20),
        nullable=False,
        default=AssignmentType.HOMEWORK,
    )
    priority: Mapped[AssignmentPriority] = mapped_column(
        String(20),
        nullable=False,
        default=AssignmentPriority.MEDIUM,
    )
    due_date: Mapped[date | None] = mapped_column(Date)

    # Audience: every student of `grade`, or just `student_id`
    grade: Mapped[str | None] = mapped_column(String(50))
    student_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    teacher: Mapped["User | None"] = relationship("User")
    student: Mapped["Student | None"] = relationship("Student")
    submissions: Mapped[list["AssignmentSubmission"]] = relationship(
        "AssignmentSubmission",
        back_populates="assignment",
        cascade="all, delete-orphan",
    )

    @property
    def submission_count(self) -> int:
        return len(self.submissions)

    def is_for(self, student: "Student") -> bool:
        """Check whether the assignment targets this student."""
        if self.student_id is not None and self.student_id == student.id:
            return True
        return self.grade is not None and self.grade == student.grade

    def __repr__(self) -> str:
        return f"<Assignment(id={self.id}, title={self.title})>"


class AssignmentSubmission(BaseModel):
    """A student's answer to an assignment."""

    __tablename__ = "assignment_submissions"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submissions_assignment_student"),
    )

    institute_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("institutes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assignment_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str | None] = mapped_column(Text)
    status: Mapped[SubmissionStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SubmissionStatus.SUBMITTED,
    )
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Review
    score: Mapped[str | None] = mapped_column(String(20))  # e.g. "A", "18/20"
    feedback: Mapped[str | None] = mapped_column(Text)
    graded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    graded_by_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    assignment: Mapped["Assignment"] = relationship("Assignment", back_populates="submissions")
    student: Mapped["Student"] = relationship("Student")
    graded_by: Mapped["User | None"] = relationship("User")

    def __repr__(self) -> str:
        return f"<AssignmentSubmission(id={self.id}, status={self.status})>"
