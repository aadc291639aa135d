"""Pydantic schemas for request/response validation."""

from app.schemas.auth import TokenResponse
from app.schemas.script import (
    LocalizedAdditionalInfo,
    ScriptCreate,
    ScriptResponse,
    ScriptVersionSubmit,
)
from app.schemas.user import UserCreate, UserResponse

__all__ = [
    "TokenResponse",
    "UserCreate",
    "UserResponse",
    "LocalizedAdditionalInfo",
    "ScriptCreate",
    "ScriptResponse",
    "ScriptVersionSubmit",
]
