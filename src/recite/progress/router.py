"""Progress API: weekly summaries, goals, monthly stats and class views."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.dependencies import authenticate, ensure_same_class_or_admin, require_teacher_or_admin
from recite.auth.service import get_user_by_id
from recite.config import Settings
from recite.db.models import User
from recite.dependencies import get_app_settings, get_db
from recite.errors import Forbidden, NotFound
from recite.progress.aggregation import summarize_weeks
from recite.progress.schemas import (
    ClassProgressEntry,
    ClassProgressResponse,
    MonthlyStatsResponse,
    PeriodTotalsResponse,
    ProgressResponse,
    StudentSummary,
    WeeklyGoalRequest,
)
from recite.progress.service import (
    class_progress,
    get_current_progress,
    list_recent_progress,
    monthly_stats,
    set_weekly_goal,
)
from recite.responses import ApiResponse, ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/progress", tags=["Progress"])


@router.get("", response_model=ApiResponse[list[ProgressResponse]])
async def get_progress_history(
    weeks: int = Query(4, ge=1, le=52),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[list[ProgressResponse]]:
    """Last N weeks of progress, newest first. The current week is refreshed first."""
    await get_current_progress(db, user.id, week_start=settings.week_start_weekday)
    await db.commit()
    rows = await list_recent_progress(db, user.id, weeks, week_start=settings.week_start_weekday)
    return ok([ProgressResponse.model_validate(r) for r in rows])


@router.get("/current", response_model=ApiResponse[ProgressResponse])
async def get_current(
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[ProgressResponse]:
    """Current week's progress."""
    progress = await get_current_progress(db, user.id, week_start=settings.week_start_weekday)
    await db.commit()
    return ok(ProgressResponse.model_validate(progress))


@router.put("/goal", response_model=ApiResponse[ProgressResponse])
async def put_weekly_goal(
    body: WeeklyGoalRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[ProgressResponse]:
    """Set the reading goal for the current week."""
    progress = await set_weekly_goal(db, user.id, body.weekly_goal, week_start=settings.week_start_weekday)
    await db.commit()
    return ok(ProgressResponse.model_validate(progress), "Weekly goal updated successfully")


@router.get("/monthly", response_model=ApiResponse[MonthlyStatsResponse])
async def get_monthly(
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[MonthlyStatsResponse]:
    """Weeks starting in the given month (default: this month) with totals."""
    today = datetime.now(timezone.utc).date()
    year = year or today.year
    month = month or today.month
    rows, totals = await monthly_stats(db, user.id, year, month)
    return ok(
        MonthlyStatsResponse(
            year=year,
            month=month,
            weeks=[ProgressResponse.model_validate(r) for r in rows],
            totals=PeriodTotalsResponse.model_validate(totals),
        )
    )


@router.get("/class", response_model=ApiResponse[ClassProgressResponse])
async def get_class_progress(
    class_id: str | None = Query(None, max_length=64),
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[ClassProgressResponse]:
    """Current-week progress of every student in a class.

    Teachers with a class assignment only see their own class.
    """
    if user.role == "teacher" and user.class_id is not None:
        if class_id is not None and class_id != user.class_id:
            msg = "Teachers can only view their own class"
            raise Forbidden(msg)
        class_id = user.class_id

    week_start, rows = await class_progress(db, class_id, week_start=settings.week_start_weekday)
    entries = [
        ClassProgressEntry(
            student=StudentSummary.model_validate(student),
            progress=ProgressResponse.model_validate(progress) if progress is not None else None,
        )
        for student, progress in rows
    ]
    totals = summarize_weeks(progress for _, progress in rows if progress is not None)
    return ok(
        ClassProgressResponse(
            week_start=week_start,
            class_id=class_id,
            students=entries,
            totals=PeriodTotalsResponse.model_validate(totals),
        )
    )


@router.get("/users/{user_id}", response_model=ApiResponse[list[ProgressResponse]])
async def get_user_progress(
    user_id: int,
    weeks: int = Query(4, ge=1, le=52),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[list[ProgressResponse]]:
    """Progress history of a specific user (self, their teacher, or admin)."""
    student = await get_user_by_id(db, user_id)
    if student is None:
        msg = "User not found"
        raise NotFound(msg)
    ensure_same_class_or_admin(user, student)

    await get_current_progress(db, student.id, week_start=settings.week_start_weekday)
    await db.commit()
    rows = await list_recent_progress(db, student.id, weeks, week_start=settings.week_start_weekday)
    return ok([ProgressResponse.model_validate(r) for r in rows])
