"""Weekly progress: recompute-and-upsert from completed readings, plus queries."""

from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from recite.db.models import Progress, Reading, User
from recite.progress.aggregation import (
    PeriodTotals,
    goal_achieved,
    improvement_percentage,
    select_week_readings,
    streak_days,
    summarize_readings,
    summarize_weeks,
)
from recite.progress.weeks import (
    SUNDAY,
    WeekWindow,
    as_utc,
    current_week_window,
    next_window,
    previous_window,
    week_window_for,
)

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}

# Streaks older than this are not looked at when recomputing a week.
STREAK_LOOKBACK_DAYS = 366


async def _completed_readings(db: AsyncSession, user_id: int, start: datetime, end: datetime) -> list[Reading]:
    result = await db.execute(
        select(Reading).where(
            Reading.user_id == user_id,
            Reading.completed.is_(True),
            Reading.created_at >= start,
            Reading.created_at < end,
        )
    )
    return list(result.scalars().all())


async def _active_days(db: AsyncSession, user_id: int, since: datetime, until: datetime) -> set[date]:
    result = await db.execute(
        select(Reading.created_at).where(
            Reading.user_id == user_id,
            Reading.completed.is_(True),
            Reading.created_at >= since,
            Reading.created_at < until,
        )
    )
    return {as_utc(ts).date() for ts in result.scalars().all()}


async def get_progress(db: AsyncSession, user_id: int, week_start: date) -> Progress | None:
    """Stored progress row for one week (fresh from the database)."""
    result = await db.execute(
        select(Progress)
        .where(Progress.user_id == user_id, Progress.week_start == week_start)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _latest_goal(db: AsyncSession, user_id: int, before: date) -> int | None:
    """Goal of the newest earlier week; a cleared goal stays cleared."""
    result = await db.execute(
        select(Progress.weekly_goal)
        .where(Progress.user_id == user_id, Progress.week_start < before)
        .order_by(Progress.week_start.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _upsert_progress(
    db: AsyncSession,
    user_id: int,
    week_start: date,
    values: dict[str, Any],
    insert_only: dict[str, Any],
) -> None:
    """Insert the weekly row or overwrite its aggregate fields.

    ``insert_only`` columns are written when the row is created and left alone
    on conflict. Dialects without ON CONFLICT fall back to insert-then-update.
    """
    now = datetime.now(timezone.utc)
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(Progress).values(
            user_id=user_id,
            week_start=week_start,
            created_at=now,
            updated_at=now,
            **values,
            **insert_only,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "week_start"],
            set_={**values, "updated_at": now},
        )
        await db.execute(stmt)
        return

    try:
        async with db.begin_nested():
            db.add(Progress(user_id=user_id, week_start=week_start, **values, **insert_only))
    except IntegrityError:
        # Lost a race with a concurrent insert: retry once as an update.
        await db.execute(
            update(Progress)
            .where(Progress.user_id == user_id, Progress.week_start == week_start)
            .values(**values, updated_at=now)
        )


async def recompute_week(
    db: AsyncSession,
    user_id: int,
    window: WeekWindow,
    *,
    now: datetime | None = None,
) -> Progress:
    """
    Rebuild the weekly row for ``user_id`` from its completed readings.

    Idempotent: the stored aggregate only depends on the readings in the
    window, the previous window and the user's goal. The caller commits.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    earlier = previous_window(window)
    readings = await _completed_readings(db, user_id, earlier.start, window.end)
    aggregate = summarize_readings(select_week_readings(readings, window))

    # An empty week has nothing to compare.
    previous = summarize_readings(select_week_readings(readings, earlier))
    improvement = improvement_percentage(
        aggregate.average_score,
        previous.average_score if previous.readings_completed and aggregate.readings_completed else None,
    )

    # Streak as seen at the end of the window, or now for the running week.
    as_of = min(as_utc(now), window.end - timedelta(microseconds=1)).date()
    since = datetime.combine(as_of - timedelta(days=STREAK_LOOKBACK_DAYS), datetime.min.time(), tzinfo=timezone.utc)
    streak = streak_days(await _active_days(db, user_id, since, window.end), as_of)

    existing = await get_progress(db, user_id, window.week_start)
    if existing is not None:
        goal = existing.weekly_goal
        insert_only: dict[str, Any] = {}
    else:
        goal = await _latest_goal(db, user_id, window.week_start)
        insert_only = {"weekly_goal": goal}

    values = {
        **aggregate.as_dict(),
        "improvement_percentage": improvement,
        "goal_achieved": goal_achieved(aggregate.readings_completed, goal),
        "streak_days": streak,
    }
    await _upsert_progress(db, user_id, window.week_start, values, insert_only)

    progress = await get_progress(db, user_id, window.week_start)
    assert progress is not None  # written above
    logger.debug(
        "progress_recomputed user_id=%s week_start=%s readings=%s",
        user_id,
        window.week_start,
        aggregate.readings_completed,
    )
    return progress


async def recompute_for_reading(db: AsyncSession, reading: Reading, week_start: int = SUNDAY) -> Progress:
    """
    Recompute the week a reading falls into.

    The following week's improvement and streak depend on it, so its stored
    row (if any) is rebuilt as well.
    """
    window = week_window_for(reading.created_at, week_start)
    progress = await recompute_week(db, reading.user_id, window)

    following = next_window(window)
    if await get_progress(db, reading.user_id, following.week_start) is not None:
        await recompute_week(db, reading.user_id, following)
    return progress


async def get_current_progress(
    db: AsyncSession,
    user_id: int,
    *,
    week_start: int = SUNDAY,
    now: datetime | None = None,
) -> Progress:
    """Current week's progress, refreshed from readings."""
    window = current_week_window(now, week_start)
    return await recompute_week(db, user_id, window, now=now)


async def list_recent_progress(
    db: AsyncSession,
    user_id: int,
    weeks: int = 4,
    *,
    week_start: int = SUNDAY,
    now: datetime | None = None,
) -> list[Progress]:
    """Stored rows for the last ``weeks`` weeks (current included), newest first."""
    current = current_week_window(now, week_start)
    oldest = current.week_start - timedelta(weeks=weeks - 1)
    result = await db.execute(
        select(Progress)
        .where(Progress.user_id == user_id, Progress.week_start >= oldest)
        .order_by(Progress.week_start.desc())
        .limit(weeks)
    )
    return list(result.scalars().all())


async def set_weekly_goal(
    db: AsyncSession,
    user_id: int,
    weekly_goal: int | None,
    *,
    week_start: int = SUNDAY,
    now: datetime | None = None,
) -> Progress:
    """Set the goal for the current week and re-evaluate ``goal_achieved``."""
    progress = await get_current_progress(db, user_id, week_start=week_start, now=now)
    progress.weekly_goal = weekly_goal
    progress.goal_achieved = goal_achieved(progress.readings_completed, weekly_goal)
    await db.flush()
    logger.info("weekly_goal_set user_id=%s goal=%s", user_id, weekly_goal)
    return progress


async def monthly_stats(db: AsyncSession, user_id: int, year: int, month: int) -> tuple[list[Progress], PeriodTotals]:
    """Weeks starting inside the given calendar month, with totals."""
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    result = await db.execute(
        select(Progress)
        .where(Progress.user_id == user_id, Progress.week_start >= first, Progress.week_start <= last)
        .order_by(Progress.week_start.asc())
    )
    rows = list(result.scalars().all())
    return rows, summarize_weeks(rows)


async def class_progress(
    db: AsyncSession,
    class_id: str | None,
    *,
    week_start: int = SUNDAY,
    now: datetime | None = None,
) -> tuple[date, list[tuple[User, Progress | None]]]:
    """
    Current-week rows for every active student, optionally limited to one class.

    Students without a row for the week are returned with ``None``.
    """
    window = current_week_window(now, week_start)
    query = (
        select(User, Progress)
        .outerjoin(
            Progress,
            (Progress.user_id == User.id) & (Progress.week_start == window.week_start),
        )
        .where(User.role == "student", User.is_active.is_(True))
        .order_by(User.name.asc(), User.id.asc())
    )
    if class_id is not None:
        query = query.where(User.class_id == class_id)
    result = await db.execute(query)
    return window.week_start, [(user, progress) for user, progress in result.all()]
