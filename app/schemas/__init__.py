"""Pydantic schemas."""

from app.schemas.auth import (
    Token,
    TokenData,
    LoginRequest,
    RefreshRequest,
)
from app.schemas.common import Envelope, ErrorEnvelope, Page, PaginationMeta, ResponseMetadata
from app.schemas.user import (
    UserCreate,
    UserUpdate,
    UserUpdateMe,
    UserResponse,
    UserListResponse,
    PasswordChange,
)

__all__ = [
    # Auth
    "Token",
    "TokenData",
    "LoginRequest",
    "RefreshRequest",
    # Envelopes
    "Envelope",
    "ErrorEnvelope",
    "Page",
    "PaginationMeta",
    "ResponseMetadata",
    # User
    "UserCreate",
    "UserUpdate",
    "UserUpdateMe",
    "UserResponse",
    "UserListResponse",
    "PasswordChange",
]
