"""Pure aggregation over readings: weekly summaries, improvement, goals, streaks.

Nothing here touches the database; the service layer loads readings and
persists the results.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Protocol

from recite.progress.weeks import WeekWindow


class ReadingLike(Protocol):
    score: float
    duration_seconds: int
    completed: bool
    mistakes: list[dict[str, Any]] | None


class WeekLike(Protocol):
    readings_completed: int
    total_time_minutes: float
    average_score: float
    goal_achieved: bool
    total_mistakes: int


@dataclass(frozen=True)
class WeeklyAggregate:
    readings_completed: int = 0
    total_time_minutes: float = 0.0
    average_score: float = 0.0
    best_score: float = 0.0
    worst_score: float = 0.0
    total_mistakes: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PeriodTotals:
    weeks: int = 0
    total_readings: int = 0
    total_time_minutes: float = 0.0
    average_score: float = 0.0
    goals_achieved: int = 0
    total_mistakes: int = 0


def _round2(value: float) -> float:
    return round(value, 2)


def select_week_readings(readings: Iterable[Any], window: WeekWindow) -> list[Any]:
    """Completed readings whose ``created_at`` falls inside ``window``."""
    return [r for r in readings if r.completed and window.contains(r.created_at)]


def summarize_readings(readings: Iterable[ReadingLike]) -> WeeklyAggregate:
    """
    Aggregate completed readings.

    Incomplete readings are ignored. An empty input gives the zero aggregate.
    Durations are converted to minutes; minutes and average are rounded to 2 dp.
    """
    completed = [r for r in readings if r.completed]
    if not completed:
        return WeeklyAggregate()

    scores = [float(r.score) for r in completed]
    total_seconds = sum(r.duration_seconds for r in completed)
    return WeeklyAggregate(
        readings_completed=len(completed),
        total_time_minutes=_round2(total_seconds / 60),
        average_score=_round2(sum(scores) / len(scores)),
        best_score=max(scores),
        worst_score=min(scores),
        total_mistakes=sum(len(r.mistakes or []) for r in completed),
    )


def improvement_percentage(current_avg: float, previous_avg: float | None) -> float:
    """
    Week-over-week change of the average score, in percent.

    ``(current - previous) / previous * 100`` rounded to 2 dp; exactly 0 when
    there is no previous week or its average is 0.
    """
    if not previous_avg:
        return 0.0
    return _round2((current_avg - previous_avg) / previous_avg * 100)


def goal_achieved(readings_completed: int, weekly_goal: int | None) -> bool:
    """True iff a goal is set and the completed count reaches it."""
    return weekly_goal is not None and weekly_goal > 0 and readings_completed >= weekly_goal


def streak_days(active_days: Iterable[date], as_of: date) -> int:
    """
    Count consecutive days with at least one completed reading.

    The run ends on ``as_of``, or on the day before when nothing has been
    read on ``as_of`` yet (the streak is still alive until the day is over).
    """
    days = set(active_days)
    cursor = as_of if as_of in days else as_of - timedelta(days=1)
    count = 0
    while cursor in days:
        count += 1
        cursor -= timedelta(days=1)
    return count


def summarize_weeks(weeks: Iterable[WeekLike]) -> PeriodTotals:
    """Roll several weekly rows up into period totals (mean of weekly averages)."""
    rows = list(weeks)
    if not rows:
        return PeriodTotals()
    return PeriodTotals(
        weeks=len(rows),
        total_readings=sum(w.readings_completed for w in rows),
        total_time_minutes=_round2(sum(w.total_time_minutes for w in rows)),
        average_score=_round2(sum(w.average_score for w in rows) / len(rows)),
        goals_achieved=sum(1 for w in rows if w.goal_achieved),
        total_mistakes=sum(w.total_mistakes for w in rows),
    )
