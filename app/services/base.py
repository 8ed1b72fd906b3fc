"""
Base service - CRUD operations wrapped in a uniform result envelope.

Every public operation returns a ServiceResult instead of raising. Database
and validation errors are caught, the session is rolled back and the error
is translated to a fixed vocabulary of string codes.
"""

import asyncio
import functools
import logging
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel as Schema
from sqlalchemy import Select, func, or_, select, text
from sqlalchemy.exc import DBAPIError, IntegrityError, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import BaseModel

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")
R = TypeVar("R")

MAX_STRING_LENGTH = 1000
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class ErrorCode(str, Enum):
    """Error codes returned in failed service results."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    RECORD_NOT_FOUND = "RECORD_NOT_FOUND"
    UNIQUE_CONSTRAINT_VIOLATION = "UNIQUE_CONSTRAINT_VIOLATION"
    FOREIGN_KEY_CONSTRAINT_VIOLATION = "FOREIGN_KEY_CONSTRAINT_VIOLATION"
    INVALID_ID = "INVALID_ID"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    # Domain codes
    FAMILY_NOT_FOUND = "FAMILY_NOT_FOUND"
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    DUPLICATE_STUDENT_ID = "DUPLICATE_STUDENT_ID"
    ALREADY_INACTIVE = "ALREADY_INACTIVE"
    ALREADY_SUBMITTED = "ALREADY_SUBMITTED"
    ACCESS_DENIED = "ACCESS_DENIED"


class ServiceError(Exception):
    """Expected failure inside a service operation."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = context or {}


class ServiceFailure(Exception):
    """Raised by the API layer when a service result is not successful."""

    def __init__(self, result: "ServiceResult") -> None:
        super().__init__(result.error)
        self.result = result


@dataclass
class ServiceResult(Generic[T]):
    """Uniform response of every service operation."""

    success: bool
    data: T | None = None
    error: str | None = None
    code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def unwrap(self) -> T:
        """Return data, raising ServiceFailure for failed results."""
        if not self.success:
            raise ServiceFailure(self)
        return self.data

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data, "metadata": self.metadata}
        return {
            "success": False,
            "error": self.error,
            "code": self.code,
            "metadata": self.metadata,
        }


@dataclass
class PaginationOptions:
    """Paging, sorting and filtering for find_many."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str = "created_at"
    sort_order: str = "desc"
    search: str | None = None
    filters: dict[str, Any] = field(default_factory=dict)


def validate_pagination_options(options: PaginationOptions | None = None) -> PaginationOptions:
    """Apply defaults and clamp page >= 1 and 1 <= limit <= 100."""
    if options is None:
        return PaginationOptions()

    sort_order = (options.sort_order or "desc").lower()
    return PaginationOptions(
        page=max(1, options.page or DEFAULT_PAGE),
        limit=min(MAX_LIMIT, max(1, options.limit or DEFAULT_LIMIT)),
        sort_by=options.sort_by or "created_at",
        sort_order=sort_order if sort_order in ("asc", "desc") else "desc",
        search=options.search,
        filters={k: v for k, v in (options.filters or {}).items() if v is not None},
    )


def build_pagination_metadata(total: int, options: PaginationOptions) -> dict[str, Any]:
    total_pages = math.ceil(total / options.limit) if options.limit else 0
    return {
        "total": total,
        "page": options.page,
        "limit": options.limit,
        "total_pages": total_pages,
        "has_next": options.page < total_pages,
        "has_previous": options.page > 1,
        "sort": {"field": options.sort_by, "direction": options.sort_order},
    }


def sanitize_input(value: Any) -> Any:
    """Trim and cap strings, drop dunder and `$` keys, recursively."""
    if isinstance(value, str):
        return value.strip()[:MAX_STRING_LENGTH]

    if isinstance(value, (list, tuple)):
        return [sanitize_input(item) for item in value]

    if isinstance(value, dict):
        return {
            key: sanitize_input(item)
            for key, item in value.items()
            if not (isinstance(key, str) and (key.startswith("__") or "$" in key))
        }

    return value


def validate_required_fields(data: dict[str, Any], required_fields: list[str]) -> list[str]:
    """Return the fields that are missing, None or an empty string."""
    return [
        name
        for name in required_fields
        if name not in data or data[name] is None or data[name] == ""
    ]


def parse_id(value: UUID | str) -> UUID:
    """Parse a record ID, raising INVALID_ID for malformed input."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ServiceError(ErrorCode.INVALID_ID, "The provided ID is invalid", {"id": str(value)})


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def classify_error(exc: Exception) -> tuple[ErrorCode, str | None]:
    """Map an ORM or driver error to an error code and user-facing message."""
    if isinstance(exc, NoResultFound):
        return ErrorCode.RECORD_NOT_FOUND, "The requested record was not found"

    if isinstance(exc, DBAPIError):
        sqlstate = _sqlstate(exc)
        message = str(exc.orig)

        if isinstance(exc, IntegrityError):
            if sqlstate == "23505" or "UNIQUE constraint failed" in message:
                return (
                    ErrorCode.UNIQUE_CONSTRAINT_VIOLATION,
                    "A record with this information already exists",
                )
            if sqlstate == "23503" or "FOREIGN KEY constraint failed" in message:
                return (
                    ErrorCode.FOREIGN_KEY_CONSTRAINT_VIOLATION,
                    "This operation would violate data integrity constraints",
                )

        # invalid_text_representation, e.g. a malformed UUID
        if sqlstate == "22P02":
            return ErrorCode.INVALID_ID, "The provided ID is invalid"

    return ErrorCode.UNKNOWN_ERROR, None


async def with_transaction(
    db: AsyncSession,
    operation: Callable[[AsyncSession], Awaitable[R]],
    timeout: float | None = None,
    *,
    name: str = "operation",
) -> R:
    """Run `operation` against `db` and commit; roll back and re-raise on error or timeout."""
    timeout = settings.TRANSACTION_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        result = await asyncio.wait_for(operation(db), timeout=timeout)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.error("Transaction failed for %s", name)
        raise
    return result


def _metadata(started: float, context: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "timestamp": int(time.time() * 1000),
        "duration": round((time.perf_counter() - started) * 1000, 3),
        "context": context or None,
    }


def service_operation(operation: str):
    """
    Wrap a service coroutine so it always returns a ServiceResult.

    The coroutine returns plain data or raises; ServiceError carries its own
    code, SQLAlchemy errors are classified and anything else is logged with
    its traceback and reported as UNKNOWN_ERROR.
    """

    def decorator(func: Callable[..., Awaitable[Any]]):
        @functools.wraps(func)
        async def wrapper(self: "BaseService", *args, **kwargs) -> ServiceResult:
            started = time.perf_counter()
            try:
                data = await func(self, *args, **kwargs)
            except ServiceError as exc:
                await self.db.rollback()
                logger.info(
                    "%s %s rejected: %s (%s)",
                    self.model_name,
                    operation,
                    exc.message,
                    exc.code.value,
                )
                return self.failure(exc.code, exc.message, started, exc.context)
            except SQLAlchemyError as exc:
                await self.db.rollback()
                code, message = classify_error(exc)
                if code == ErrorCode.UNKNOWN_ERROR:
                    logger.exception("%s %s failed", self.model_name, operation)
                else:
                    logger.warning("%s %s failed: %s", self.model_name, operation, code.value)
                return self.failure(
                    code,
                    message or f"Failed to {operation} {self.model_name.lower()}",
                    started,
                    {"operation": operation},
                )
            except Exception:
                await self.db.rollback()
                logger.exception("%s %s failed", self.model_name, operation)
                return self.failure(
                    ErrorCode.UNKNOWN_ERROR,
                    f"Failed to {operation} {self.model_name.lower()}",
                    started,
                    {"operation": operation},
                )
            return self.success(data, started)

        return wrapper

    return decorator


class BaseService(Generic[ModelT]):
    """
    Generic CRUD service for a single model.

    Subclasses set `model` and override the hooks (`before_create`,
    `before_update`, `apply_filters`, `load_options`) for entity rules.
    When `institute_id` is given every query is scoped to that institute.
    """

    model: type[ModelT]
    model_name: str = "Record"
    required_fields: list[str] = []
    not_found_code: ErrorCode = ErrorCode.RECORD_NOT_FOUND
    search_fields: list[str] = ["name"]

    def __init__(self, db: AsyncSession, institute_id: UUID | None = None) -> None:
        self.db = db
        self.institute_id = institute_id

    # ============== Envelope helpers ==============

    def success(
        self,
        data: T,
        started: float,
        context: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        return ServiceResult(success=True, data=data, metadata=_metadata(started, context))

    def failure(
        self,
        code: ErrorCode,
        message: str,
        started: float,
        context: dict[str, Any] | None = None,
    ) -> ServiceResult:
        return ServiceResult(
            success=False,
            error=message,
            code=code.value,
            metadata=_metadata(started, context),
        )

    # ============== Hooks ==============

    def load_options(self) -> list:
        """Loader options applied whenever records are fetched."""
        return []

    def apply_filters(self, query: Select, options: PaginationOptions) -> Select:
        """Add entity-specific WHERE clauses for find_many."""
        if options.search and self.search_fields:
            pattern = f"%{options.search}%"
            clauses = [getattr(self.model, name).ilike(pattern) for name in self.search_fields]
            query = query.where(clauses[0] if len(clauses) == 1 else or_(*clauses))
        return query

    async def before_create(self, data: dict[str, Any]) -> dict[str, Any]:
        return data

    async def before_update(self, record: ModelT, data: dict[str, Any]) -> dict[str, Any]:
        return data

    # ============== Internals ==============

    def _scope(self, query: Select) -> Select:
        if self.institute_id is not None and hasattr(self.model, "institute_id"):
            query = query.where(self.model.institute_id == self.institute_id)
        return query

    def _prepare(self, data: Schema | dict[str, Any], *, partial: bool) -> dict[str, Any]:
        if isinstance(data, Schema):
            data = data.model_dump(exclude_unset=partial)
        return sanitize_input(dict(data))

    async def _get(self, record_id: UUID) -> ModelT | None:
        query = self._scope(select(self.model).where(self.model.id == record_id))
        query = query.options(*self.load_options()).execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_raise(self, record_id: UUID | str) -> ModelT:
        record = await self._get(parse_id(record_id))
        if record is None:
            raise ServiceError(
                self.not_found_code,
                f"{self.model_name} not found",
                {"id": str(record_id)},
            )
        return record

    def _order_by(self, options: PaginationOptions):
        if options.sort_by not in self.model.__table__.columns:
            options.sort_by = "created_at"
        column = getattr(self.model, options.sort_by)
        return column.asc() if options.sort_order == "asc" else column.desc()

    # ============== CRUD ==============

    @service_operation("create")
    async def create(self, data: Schema | dict[str, Any]) -> ModelT:
        values = self._prepare(data, partial=False)

        if hasattr(self.model, "institute_id"):
            if self.institute_id is not None:
                values["institute_id"] = self.institute_id
            required = [*self.required_fields, "institute_id"]
        else:
            required = list(self.required_fields)

        missing = validate_required_fields(values, required)
        if missing:
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                f"Missing required fields: {', '.join(missing)}",
                {"missing_fields": missing},
            )

        values = await self.before_create(values)
        record = self.model(**values)
        self.db.add(record)
        await self.db.commit()

        return await self.get_or_raise(record.id)

    @service_operation("find")
    async def find_by_id(self, record_id: UUID | str) -> ModelT:
        return await self.get_or_raise(record_id)

    @service_operation("update")
    async def update(self, record_id: UUID | str, data: Schema | dict[str, Any]) -> ModelT:
        record = await self.get_or_raise(record_id)
        values = self._prepare(data, partial=True)

        # Required fields may be omitted on update but never blanked
        blanked = [
            name
            for name in self.required_fields
            if name in values and validate_required_fields(values, [name])
        ]
        if blanked:
            raise ServiceError(
                ErrorCode.VALIDATION_ERROR,
                f"Fields cannot be empty: {', '.join(blanked)}",
                {"invalid_fields": blanked},
            )

        values = await self.before_update(record, values)
        for name, value in values.items():
            setattr(record, name, value)

        await self.db.commit()
        return await self.get_or_raise(record.id)

    @service_operation("delete")
    async def delete(self, record_id: UUID | str) -> bool:
        """Soft delete when the model has `is_active`, otherwise remove the row."""
        record = await self.get_or_raise(record_id)

        if hasattr(self.model, "is_active"):
            if not record.is_active:
                raise ServiceError(
                    ErrorCode.ALREADY_INACTIVE,
                    f"{self.model_name} is already inactive",
                    {"id": str(record.id)},
                )
            record.is_active = False
        else:
            await self.db.delete(record)

        await self.db.commit()
        return True

    @service_operation("list")
    async def find_many(self, options: PaginationOptions | None = None) -> dict[str, Any]:
        options = validate_pagination_options(options)

        query = self.apply_filters(self._scope(select(self.model)), options)
        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.options(*self.load_options())
            .order_by(self._order_by(options))
            .offset((options.page - 1) * options.limit)
            .limit(options.limit)
        )
        result = await self.db.execute(query)

        return {
            "items": list(result.scalars().all()),
            "pagination": build_pagination_metadata(total, options),
        }

    # ============== Utilities ==============

    async def with_transaction(
        self,
        operation: Callable[[AsyncSession], Awaitable[R]],
        timeout: float | None = None,
    ) -> R:
        """Run `operation` and commit; roll back and re-raise on error or timeout."""
        return await with_transaction(self.db, operation, timeout, name=self.model_name)

    async def get_health_status(self) -> ServiceResult[dict[str, Any]]:
        started = time.perf_counter()
        try:
            await self.db.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Health check failed for %s", self.model_name)
            return self.failure(
                ErrorCode.UNKNOWN_ERROR,
                "Database connection not available",
                started,
                {"status": "unhealthy"},
            )
        return self.success(
            {
                "status": "healthy",
                "details": {"model_name": self.model_name, "connection_status": "connected"},
            },
            started,
        )

