"""Portal service - read-only views for parents, students and teachers."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.academic import AcademicLog, Assignment, AssignmentSubmission, SubmissionStatus
from app.models.course import Course
from app.models.family import Family
from app.models.fee import AllocationStatus, FeeAllocation
from app.models.student import Student
from app.models.subscription import StudentSubscription
from app.models.user import User
from app.modules import module_registry
from app.services import fee as fee_service
from app.services import payment as payment_service
from app.services.base import ErrorCode, ServiceError

RECENT_PAYMENTS = 5
RECENT_LOGS = 10


def _portal_student(family: Family, student: Student) -> dict:
    breakdown = fee_service.build_fee_breakdown(family, student)
    active = {s.id: s for s in student.subscriptions if s.is_active}
    return {
        "id": student.id,
        "name": student.name,
        "grade": student.grade,
        "student_code": student.student_code,
        "enrollment_date": student.enrollment_date,
        "is_active": student.is_active,
        "subscriptions": [
            {
                "id": item["subscription_id"],
                "kind": item["kind"],
                "name": item["name"],
                "monthly_amount": item["monthly_amount"],
                "discount_amount": item["discount_amount"],
                "start_date": active[item["subscription_id"]].start_date,
            }
            for item in breakdown["items"]
        ],
        "monthly_fee": breakdown["net_amount"],
    }


async def _allocations(
    db: AsyncSession,
    student_ids: list[UUID],
    *,
    outstanding_only: bool,
) -> list[FeeAllocation]:
    if not student_ids:
        return []
    query = (
        select(FeeAllocation)
        .where(FeeAllocation.student_id.in_(student_ids))
        .options(selectinload(FeeAllocation.payment_allocations))
        .execution_options(populate_existing=True)
        .order_by(FeeAllocation.month.desc())
    )
    if outstanding_only:
        query = query.where(FeeAllocation.status != AllocationStatus.PAID)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _academic_logs(db: AsyncSession, student_ids: list[UUID]) -> list[AcademicLog]:
    """Latest logs parents and students may read."""
    if not student_ids or not module_registry.is_enabled("academics"):
        return []
    result = await db.execute(
        select(AcademicLog)
        .where(AcademicLog.student_id.in_(student_ids), AcademicLog.is_private.is_(False))
        .options(selectinload(AcademicLog.student), selectinload(AcademicLog.teacher))
        .order_by(AcademicLog.created_at.desc())
        .limit(RECENT_LOGS)
    )
    return list(result.scalars().all())


async def _student_assignments(db: AsyncSession, student: Student) -> list[dict]:
    """Active assignments aimed at a student, each with the student's own submission."""
    if not module_registry.is_enabled("academics"):
        return []
    audience = [Assignment.student_id == student.id]
    if student.grade:
        audience.append(Assignment.grade == student.grade)
    result = await db.execute(
        select(Assignment)
        .where(
            Assignment.institute_id == student.institute_id,
            Assignment.is_active.is_(True),
            or_(*audience),
        )
        .options(
            selectinload(Assignment.teacher),
            selectinload(Assignment.student),
            selectinload(Assignment.submissions).selectinload(AssignmentSubmission.student),
        )
        .execution_options(populate_existing=True)
        .order_by(Assignment.due_date.asc(), Assignment.created_at.asc())
    )
    return [
        {
            "assignment": assignment,
            "submission": next(
                (s for s in assignment.submissions if s.student_id == student.id), None
            ),
        }
        for assignment in result.scalars().all()
    ]


async def get_parent_overview(db: AsyncSession, user: User) -> dict:
    """Family overview for a parent account."""
    if user.family_id is None:
        raise ServiceError(ErrorCode.FAMILY_NOT_FOUND, "No family is linked to this account")

    family = await fee_service.load_family_for_fees(db, user.family_id, user.institute_id)
    children = sorted((s for s in family.students if s.is_active), key=lambda s: s.name)

    outstanding = await _allocations(db, [s.id for s in children], outstanding_only=True)
    payments, _ = await payment_service.get_payments(
        db,
        institute_id=family.institute_id,
        family_id=family.id,
        limit=RECENT_PAYMENTS,
    )

    return {
        "family_id": family.id,
        "family_name": family.name,
        "children": [_portal_student(family, student) for student in children],
        "outstanding_allocations": outstanding,
        "total_outstanding": sum((a.remaining_amount for a in outstanding), Decimal(0)),
        "recent_payments": payments,
        "academic_logs": await _academic_logs(db, [s.id for s in children]),
    }


async def get_student_overview(db: AsyncSession, user: User) -> dict:
    """Profile and fees for a student account."""
    if user.student_id is None:
        raise ServiceError(ErrorCode.STUDENT_NOT_FOUND, "No student is linked to this account")

    family_id = (
        await db.execute(select(Student.family_id).where(Student.id == user.student_id))
    ).scalar_one_or_none()
    if family_id is None:
        raise ServiceError(ErrorCode.STUDENT_NOT_FOUND, "Student not found")

    family = await fee_service.load_family_for_fees(db, family_id, user.institute_id)
    student = next(s for s in family.students if s.id == user.student_id)
    allocations = await _allocations(db, [student.id], outstanding_only=False)

    return {
        "student": _portal_student(family, student),
        "family_name": family.name,
        "allocations": allocations,
        "assignments": await _student_assignments(db, student),
        "academic_logs": await _academic_logs(db, [student.id]),
        "total_outstanding": sum(
            (a.remaining_amount for a in allocations if a.status != AllocationStatus.PAID),
            Decimal(0),
        ),
    }


async def get_teacher_overview(db: AsyncSession, user: User) -> dict:
    """Courses taught by a teacher with their currently enrolled students."""
    result = await db.execute(
        select(Course)
        .where(Course.teacher_id == user.id, Course.is_active.is_(True))
        .options(selectinload(Course.subscriptions).selectinload(StudentSubscription.student))
        .execution_options(populate_existing=True)
        .order_by(Course.name)
    )

    courses = []
    student_ids: set[UUID] = set()
    for course in result.scalars().all():
        students = sorted(
            (
                s.student
                for s in course.subscriptions
                if s.is_active and s.student.is_active
            ),
            key=lambda student: student.name,
        )
        student_ids.update(student.id for student in students)
        courses.append(
            {
                "id": course.id,
                "name": course.name,
                "grade": course.grade,
                "capacity": course.capacity,
                "enrolled": len(students),
                "students": [
                    {"id": student.id, "name": student.name, "grade": student.grade}
                    for student in students
                ],
            }
        )

    active_assignments = ungraded = 0
    if module_registry.is_enabled("academics"):
        active_assignments = (
            await db.execute(
                select(func.count(Assignment.id)).where(
                    Assignment.teacher_id == user.id, Assignment.is_active.is_(True)
                )
            )
        ).scalar_one()
        ungraded = (
            await db.execute(
                select(func.count(AssignmentSubmission.id))
                .join(Assignment)
                .where(
                    Assignment.teacher_id == user.id,
                    AssignmentSubmission.status != SubmissionStatus.GRADED,
                )
            )
        ).scalar_one()

    return {
        "teacher_id": user.id,
        "teacher_name": user.name,
        "courses": courses,
        "total_students": len(student_ids),
        "active_assignments": active_assignments,
        "ungraded_submissions": ungraded,
    }


async def get_linked_student(db: AsyncSession, user: User) -> Student:
    """Student record behind a student account."""
    student = None
    if user.student_id is not None:
        student = (
            await db.execute(
                select(Student).where(
                    Student.id == user.student_id,
                    Student.institute_id == user.institute_id,
                )
            )
        ).scalar_one_or_none()
    if student is None or not student.is_active:
        raise ServiceError(ErrorCode.STUDENT_NOT_FOUND, "No student is linked to this account")
    return student
