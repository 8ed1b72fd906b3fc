"""Shared response schemas."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseMetadata(BaseModel):
    """Timing information attached to every service envelope."""

    timestamp: int  # epoch milliseconds
    duration: float  # milliseconds
    context: dict[str, Any] | None = None


class Envelope(BaseModel, Generic[T]):
    """Successful service response."""

    success: bool = True
    data: T
    metadata: ResponseMetadata | None = None


class ErrorEnvelope(BaseModel):
    """Failed service response."""

    success: bool = False
    error: str
    code: str
    metadata: ResponseMetadata | None = None


class SortConfig(BaseModel):
    field: str
    direction: str


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_previous: bool
    sort: SortConfig | None = None


class Page(BaseModel, Generic[T]):
    """Paginated list of items."""

    items: list[T]
    pagination: PaginationMeta


class MessageResponse(BaseModel):
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
