"""Pydantic schemas for reading sessions."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from recite.enums import MistakeType, Severity
from recite.poems.schemas import PoemSummary


class Mistake(BaseModel):
    word: str = Field(..., min_length=1, max_length=100)
    position: int = Field(..., ge=0)
    type: MistakeType
    severity: Severity


class SessionData(BaseModel):
    start_time: datetime
    end_time: datetime | None = None
    pause_count: int = Field(0, ge=0)
    total_pause_time: float = Field(0, ge=0)


class ReadingCreateRequest(BaseModel):
    poem_id: int = Field(..., ge=1)
    score: float = Field(..., ge=0, le=100)
    duration_seconds: int = Field(..., ge=1, le=86400)
    completed: bool = False
    feedback: str | None = Field(None, max_length=1000)
    mistakes: list[Mistake] = Field(default_factory=list, max_length=500)
    session_data: SessionData | None = None


class ReadingUpdateRequest(BaseModel):
    """Partial update of a reading session."""

    score: float | None = Field(None, ge=0, le=100)
    duration_seconds: int | None = Field(None, ge=1, le=86400)
    completed: bool | None = None
    feedback: str | None = Field(None, max_length=1000)
    mistakes: list[Mistake] | None = Field(None, max_length=500)
    session_data: SessionData | None = None


class ReadingResponse(BaseModel):
    id: int
    user_id: int
    poem_id: int
    score: float
    duration_seconds: int
    completed: bool
    recording_url: str | None = None
    feedback: str | None = None
    mistakes: list[Mistake] = []
    session_data: SessionData | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReadingDetailResponse(ReadingResponse):
    """Reading with a summary of its poem."""

    poem: PoemSummary


class ReadingStatsResponse(BaseModel):
    total_readings: int
    completed_readings: int
    total_time_minutes: float
    average_score: float
    best_score: float
    worst_score: float
    total_mistakes: int
    mistakes_by_type: dict[str, int]
    unique_poems: int
