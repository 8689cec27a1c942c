"""Request/response schemas for progress endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class ProgressResponse(BaseModel):
    """One weekly progress row."""

    user_id: int
    week_start: date
    readings_completed: int = 0
    total_time_minutes: float = 0.0
    average_score: float = 0.0
    improvement_percentage: float = 0.0
    weekly_goal: int | None = None
    goal_achieved: bool = False
    streak_days: int = 0
    best_score: float = 0.0
    worst_score: float = 0.0
    total_mistakes: int = 0
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class WeeklyGoalRequest(BaseModel):
    """Set (or clear with ``null``) the goal for the current week."""

    weekly_goal: int | None = Field(..., ge=1, le=50)


class PeriodTotalsResponse(BaseModel):
    weeks: int
    total_readings: int
    total_time_minutes: float
    average_score: float
    goals_achieved: int
    total_mistakes: int

    model_config = {"from_attributes": True}


class MonthlyStatsResponse(BaseModel):
    year: int
    month: int
    weeks: list[ProgressResponse]
    totals: PeriodTotalsResponse


class StudentSummary(BaseModel):
    id: int
    name: str
    email: str
    level: str
    class_id: str | None = None

    model_config = {"from_attributes": True}


class ClassProgressEntry(BaseModel):
    student: StudentSummary
    progress: ProgressResponse | None = None


class ClassProgressResponse(BaseModel):
    week_start: date
    class_id: str | None = None
    students: list[ClassProgressEntry]
    totals: PeriodTotalsResponse
