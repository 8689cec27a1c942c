"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from recite.enums import Level, Role

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Account registration."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=2, max_length=100)
    role: Role = "student"
    level: Level = "beginner"
    class_id: str | None = Field(None, max_length=64)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            msg = "Name must contain at least 2 characters"
            raise ValueError(msg)
        return v


class LoginRequest(BaseModel):
    """Login with email + password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class RefreshRequest(BaseModel):
    """Refresh credential rotation request."""

    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    """Logout; the refresh credential is optional (access-only clients)."""

    refresh_token: str | None = None


class ProfileUpdateRequest(BaseModel):
    """Update own profile fields."""

    name: str | None = Field(None, min_length=2, max_length=100)
    level: Level | None = None
    avatar_url: str | None = Field(None, max_length=512)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 2:
            msg = "Name must contain at least 2 characters"
            raise ValueError(msg)
        return v


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Serialized user. Never carries the password hash."""

    id: int
    email: str
    name: str
    role: str
    level: str
    class_id: str | None = None
    avatar_url: str | None = None
    is_active: bool = True
    last_login: datetime | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """User plus a fresh credential pair."""

    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class ProfileResponse(BaseModel):
    user: UserResponse
