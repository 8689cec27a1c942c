"""Week window utilities for progress aggregation.

A window starts at 00:00 UTC on the configured weekday (inclusive) and ends
seven days later (exclusive). Weekdays use ``datetime.weekday()`` numbering.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

MONDAY = 0
SUNDAY = 6


@dataclass(frozen=True)
class WeekWindow:
    """Half-open interval ``[start, end)`` covering one aggregation week."""

    start: datetime
    end: datetime

    @property
    def week_start(self) -> date:
        return self.start.date()

    def contains(self, dt: datetime) -> bool:
        return self.start <= as_utc(dt) < self.end


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def week_start_date(d: date, week_start: int = SUNDAY) -> date:
    """The most recent ``week_start`` weekday on or before ``d``."""
    return d - timedelta(days=(d.weekday() - week_start) % 7)


def window_for_date(d: date, week_start: int = SUNDAY) -> WeekWindow:
    """Window of the week containing calendar day ``d``."""
    start = datetime.combine(week_start_date(d, week_start), time.min, tzinfo=timezone.utc)
    return WeekWindow(start=start, end=start + timedelta(days=7))


def week_window_for(dt: datetime, week_start: int = SUNDAY) -> WeekWindow:
    """Window of the week containing instant ``dt``."""
    return window_for_date(as_utc(dt).date(), week_start)


def current_week_window(now: datetime | None = None, week_start: int = SUNDAY) -> WeekWindow:
    """Window of the current week in UTC."""
    if now is None:
        now = datetime.now(timezone.utc)
    return week_window_for(now, week_start)


def previous_window(window: WeekWindow) -> WeekWindow:
    """The week immediately before ``window``."""
    return WeekWindow(start=window.start - timedelta(days=7), end=window.start)


def next_window(window: WeekWindow) -> WeekWindow:
    """The week immediately after ``window``."""
    return WeekWindow(start=window.end, end=window.end + timedelta(days=7))
