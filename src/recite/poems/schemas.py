"""Pydantic schemas for the poem library."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from recite.enums import Difficulty, Level

PoemSort = Literal["created_at", "title", "read_count", "average_score"]


def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned = [t.strip() for t in tags if t and t.strip()]
    for tag in cleaned:
        if len(tag) > 30:
            msg = "A tag cannot exceed 30 characters"
            raise ValueError(msg)
    return cleaned


class PoemCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    author: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=10000)
    theme: str = Field(..., min_length=1, max_length=50)
    level: Level
    difficulty: Difficulty
    duration_minutes: int = Field(..., ge=1, le=60)
    description: str | None = Field(None, max_length=500)
    tags: list[str] = Field(default_factory=list, max_length=20)

    model_config = {"str_strip_whitespace": True}

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v) or []


class PoemUpdateRequest(BaseModel):
    """Partial update: only provided fields change."""

    title: str | None = Field(None, min_length=1, max_length=200)
    author: str | None = Field(None, min_length=1, max_length=100)
    content: str | None = Field(None, min_length=1, max_length=10000)
    theme: str | None = Field(None, min_length=1, max_length=50)
    level: Level | None = None
    difficulty: Difficulty | None = None
    duration_minutes: int | None = Field(None, ge=1, le=60)
    description: str | None = Field(None, max_length=500)
    tags: list[str] | None = Field(None, max_length=20)

    model_config = {"str_strip_whitespace": True}

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v)


class PoemSummary(BaseModel):
    id: int
    title: str
    author: str
    theme: str
    level: str
    difficulty: str
    duration_minutes: int

    model_config = {"from_attributes": True}


class PoemResponse(PoemSummary):
    content: str
    description: str | None = None
    tags: list[str] = []
    is_active: bool
    created_by: int
    read_count: int = 0
    average_score: float | None = None
    created_at: datetime
    updated_at: datetime
