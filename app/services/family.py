"""Family service."""

from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import selectinload

from app.models.family import Family
from app.models.student import Student
from app.services.base import (
    BaseService,
    ErrorCode,
    PaginationOptions,
    ServiceError,
    service_operation,
)


class FamilyService(BaseService[Family]):
    """CRUD for families. Deleting a family only deactivates it."""

    model = Family
    model_name = "Family"
    required_fields = ["name"]
    not_found_code = ErrorCode.FAMILY_NOT_FOUND
    search_fields = ["name", "email", "phone"]

    def load_options(self) -> list:
        return [selectinload(Family.students)]

    def apply_filters(self, query: Select, options: PaginationOptions) -> Select:
        query = super().apply_filters(query, options)

        if options.filters.get("is_active") is not None:
            query = query.where(Family.is_active == options.filters["is_active"])
        elif not options.filters.get("include_inactive"):
            query = query.where(Family.is_active.is_(True))

        return query

    async def before_update(self, record: Family, data: dict[str, Any]) -> dict[str, Any]:
        for name in ("discount_amount", "is_active"):
            if name in data and data[name] is None:
                data.pop(name)
        return data

    @service_operation("delete")
    async def delete(self, record_id) -> bool:
        """Deactivate a family that has no active students."""
        family = await self.get_or_raise(record_id)
        if not family.is_active:
            raise ServiceError(
                ErrorCode.ALREADY_INACTIVE,
                "Family is already inactive",
                {"id": str(family.id)},
            )

        active_students = (
            await self.db.execute(
                select(func.count(Student.id)).where(
                    Student.family_id == family.id,
                    Student.is_active.is_(True),
                )
            )
        ).scalar() or 0
        if active_students:
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                "Cannot deactivate a family with active students",
                {"active_students": active_students},
            )

        family.is_active = False
        await self.db.commit()
        return True
