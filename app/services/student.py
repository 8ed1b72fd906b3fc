"""Student service."""

from datetime import date, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import Select, case, func, select
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.models.family import Family
from app.models.student import Student
from app.services.base import (
    BaseService,
    ErrorCode,
    PaginationOptions,
    ServiceError,
    parse_id,
    service_operation,
)


class StudentService(BaseService[Student]):
    """
    CRUD for students.

    A student always belongs to an existing family of the same institute and
    student codes are unique within an institute. Deleting a student only
    deactivates it.

    find_many filters (PaginationOptions.filters):
    - grade, family_id, is_active
    - enrolled_from / enrolled_to: enrolment date range
    - include_inactive: inactive students are hidden unless this is set
    """

    model = Student
    model_name = "Student"
    required_fields = ["name", "family_id"]
    not_found_code = ErrorCode.STUDENT_NOT_FOUND
    search_fields = ["name", "student_code"]

    def load_options(self) -> list:
        return [selectinload(Student.family)]

    async def _check_family(self, family_id: UUID | str, institute_id: UUID | None) -> Family:
        query = select(Family).where(Family.id == parse_id(family_id))
        if institute_id is not None:
            query = query.where(Family.institute_id == institute_id)
        family = (await self.db.execute(query)).scalar_one_or_none()
        if family is None:
            raise ServiceError(
                ErrorCode.FAMILY_NOT_FOUND,
                "Family not found",
                {"family_id": str(family_id)},
            )
        return family

    async def _check_student_code(
        self,
        student_code: str,
        institute_id: UUID,
        exclude_id: UUID | None = None,
    ) -> None:
        query = select(Student.id).where(
            Student.institute_id == institute_id,
            Student.student_code == student_code,
        )
        if exclude_id is not None:
            query = query.where(Student.id != exclude_id)
        if (await self.db.execute(query)).first() is not None:
            raise ServiceError(
                ErrorCode.DUPLICATE_STUDENT_ID,
                f"Student ID {student_code} already exists",
                {"student_code": student_code},
            )

    async def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        family = await self._check_family(data["family_id"], data["institute_id"])
        data["family_id"] = family.id

        if data.get("student_code"):
            await self._check_student_code(data["student_code"], data["institute_id"])
        else:
            data["student_code"] = None

        if data.get("enrollment_date") is None:
            data["enrollment_date"] = date.today()

        return data

    async def before_update(self, record: Student, data: dict[str, Any]) -> dict[str, Any]:
        # Columns that cannot be cleared
        for name in ("family_id", "enrollment_date", "is_active"):
            if name in data and data[name] is None:
                data.pop(name)

        if "family_id" in data and data["family_id"] != record.family_id:
            family = await self._check_family(data["family_id"], record.institute_id)
            data["family_id"] = family.id

        if "student_code" in data and not data["student_code"]:
            data["student_code"] = None
        elif data.get("student_code") and data["student_code"] != record.student_code:
            await self._check_student_code(
                data["student_code"], record.institute_id, exclude_id=record.id
            )

        return data

    def apply_filters(self, query: Select, options: PaginationOptions) -> Select:
        query = super().apply_filters(query, options)
        filters = options.filters

        if filters.get("grade"):
            query = query.where(Student.grade == filters["grade"])
        if filters.get("family_id"):
            query = query.where(Student.family_id == filters["family_id"])
        if filters.get("enrolled_from"):
            query = query.where(Student.enrollment_date >= filters["enrolled_from"])
        if filters.get("enrolled_to"):
            query = query.where(Student.enrollment_date <= filters["enrolled_to"])

        if filters.get("is_active") is not None:
            query = query.where(Student.is_active == filters["is_active"])
        elif not filters.get("include_inactive"):
            query = query.where(Student.is_active.is_(True))

        return query

    @service_operation("list by family")
    async def find_by_family_id(self, family_id: UUID | str) -> list[Student]:
        family = await self._check_family(family_id, self.institute_id)
        result = await self.db.execute(
            select(Student)
            .where(Student.family_id == family.id)
            .options(*self.load_options())
            .order_by(Student.name)
        )
        return list(result.scalars().all())

    @service_operation("get statistics")
    async def get_statistics(self) -> dict[str, Any]:
        recent_since = date.today() - timedelta(days=settings.RECENT_ENROLLMENT_DAYS)

        totals_query = self._scope(
            select(
                func.count(Student.id).label("total"),
                func.coalesce(
                    func.sum(case((Student.is_active.is_(True), 1), else_=0)), 0
                ).label("active"),
                func.coalesce(
                    func.sum(case((Student.enrollment_date >= recent_since, 1), else_=0)), 0
                ).label("recent"),
            )
        )
        totals = (await self.db.execute(totals_query)).one()

        grade_query = self._scope(
            select(Student.grade, func.count(Student.id).label("count"))
            .where(Student.is_active.is_(True))
            .group_by(Student.grade)
        )
        by_grade = {
            (row.grade or "Unassigned"): row.count
            for row in await self.db.execute(grade_query)
        }

        total = int(totals.total or 0)
        active = int(totals.active or 0)
        return {
            "total": total,
            "active": active,
            "inactive": total - active,
            "by_grade": by_grade,
            "recent_enrollments": int(totals.recent or 0),
        }
