"""Course and service (offering) services."""

from typing import Any
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.orm import selectinload

from app.core.permissions import Role
from app.models.course import Course, FeeStructure, Service
from app.models.user import User
from app.services.base import (
    BaseService,
    ErrorCode,
    PaginationOptions,
    ServiceError,
    parse_id,
)


def _active_filter(model, query: Select, options: PaginationOptions) -> Select:
    if options.filters.get("is_active") is not None:
        return query.where(model.is_active == options.filters["is_active"])
    if not options.filters.get("include_inactive"):
        return query.where(model.is_active.is_(True))
    return query


def _apply_fee(record: Course | Service, fee: dict[str, Any]) -> None:
    """Create or update the fee structure of a course or service."""
    if record.fee_structure is None:
        record.fee_structure = FeeStructure(
            institute_id=record.institute_id,
            amount=fee["amount"],
            billing_cycle=fee["billing_cycle"],
        )
    else:
        record.fee_structure.amount = fee["amount"]
        record.fee_structure.billing_cycle = fee["billing_cycle"]


class CourseService(BaseService[Course]):
    """
    CRUD for courses.

    The optional `fee` payload creates or replaces the course's fee
    structure. A teacher must be an active TEACHER of the same institute.
    """

    model = Course
    model_name = "Course"
    required_fields = ["name"]
    search_fields = ["name", "description"]

    def load_options(self) -> list:
        return [selectinload(Course.fee_structure)]

    def apply_filters(self, query: Select, options: PaginationOptions) -> Select:
        query = _active_filter(Course, super().apply_filters(query, options), options)
        if options.filters.get("grade"):
            query = query.where(Course.grade == options.filters["grade"])
        if options.filters.get("teacher_id"):
            query = query.where(Course.teacher_id == options.filters["teacher_id"])
        return query

    async def _check_teacher(self, teacher_id: UUID | str, institute_id: UUID) -> UUID:
        teacher = (
            await self.db.execute(
                select(User).where(
                    User.id == parse_id(teacher_id),
                    User.institute_id == institute_id,
                )
            )
        ).scalar_one_or_none()
        if teacher is None or teacher.role != Role.TEACHER or not teacher.is_active:
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                "Teacher must be an active teacher of this institute",
                {"teacher_id": str(teacher_id)},
            )
        return teacher.id

    async def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        fee = data.pop("fee", None)
        if data.get("teacher_id"):
            data["teacher_id"] = await self._check_teacher(data["teacher_id"], data["institute_id"])
        if fee:
            data["fee_structure"] = FeeStructure(
                institute_id=data["institute_id"],
                amount=fee["amount"],
                billing_cycle=fee["billing_cycle"],
            )
        return data

    async def before_update(self, record: Course, data: dict[str, Any]) -> dict[str, Any]:
        fee = data.pop("fee", None)
        if "is_active" in data and data["is_active"] is None:
            data.pop("is_active")
        if data.get("teacher_id") and data["teacher_id"] != record.teacher_id:
            data["teacher_id"] = await self._check_teacher(data["teacher_id"], record.institute_id)
        if fee:
            _apply_fee(record, fee)
        return data


class OfferingService(BaseService[Service]):
    """CRUD for services such as transport or meals."""

    model = Service
    model_name = "Service"
    required_fields = ["name"]
    search_fields = ["name", "description"]

    def load_options(self) -> list:
        return [selectinload(Service.fee_structure)]

    def apply_filters(self, query: Select, options: PaginationOptions) -> Select:
        return _active_filter(Service, super().apply_filters(query, options), options)

    async def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        fee = data.pop("fee", None)
        if fee:
            data["fee_structure"] = FeeStructure(
                institute_id=data["institute_id"],
                amount=fee["amount"],
                billing_cycle=fee["billing_cycle"],
            )
        return data

    async def before_update(self, record: Service, data: dict[str, Any]) -> dict[str, Any]:
        fee = data.pop("fee", None)
        if "is_active" in data and data["is_active"] is None:
            data.pop("is_active")
        if fee:
            _apply_fee(record, fee)
        return data
