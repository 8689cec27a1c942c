"""Schemas for teacher-managed student accounts."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field, field_validator

from recite.enums import Level


class StudentCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=2, max_length=100)
    level: Level = "beginner"
    class_id: str | None = Field(None, max_length=64)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class StudentUpdateRequest(BaseModel):
    """Partial update; ``class_id`` may be cleared with ``null``."""

    name: str | None = Field(None, min_length=2, max_length=100)
    level: Level | None = None
    class_id: str | None = Field(None, max_length=64)
    is_active: bool | None = None
