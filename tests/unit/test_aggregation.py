"""Pure aggregation: weekly summaries, improvement, goals, streaks, rollups."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

import pytest

from recite.progress.aggregation import (
    PeriodTotals,
    WeeklyAggregate,
    goal_achieved,
    improvement_percentage,
    select_week_readings,
    streak_days,
    summarize_readings,
    summarize_weeks,
)
from recite.progress.weeks import week_window_for


@dataclass
class FakeReading:
    score: float
    duration_seconds: int = 60
    completed: bool = True
    mistakes: list[dict] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime(2026, 10, 20, 12, tzinfo=timezone.utc))


@dataclass
class FakeWeek:
    readings_completed: int
    total_time_minutes: float
    average_score: float
    goal_achieved: bool = False
    total_mistakes: int = 0


class TestSummarizeReadings:
    def test_two_readings(self):
        readings = [
            FakeReading(score=80, duration_seconds=90, mistakes=[{"word": "a"}]),
            FakeReading(score=90, duration_seconds=45, mistakes=[{"word": "b"}, {"word": "c"}]),
        ]
        aggregate = summarize_readings(readings)
        assert aggregate.readings_completed == 2
        assert aggregate.average_score == 85
        assert aggregate.best_score == 90
        assert aggregate.worst_score == 80
        assert aggregate.total_mistakes == 3
        assert aggregate.total_time_minutes == 2.25

    def test_empty_is_zero_aggregate(self):
        assert summarize_readings([]) == WeeklyAggregate()

    def test_incomplete_readings_ignored(self):
        aggregate = summarize_readings([FakeReading(score=100, completed=False), FakeReading(score=50)])
        assert aggregate.readings_completed == 1
        assert aggregate.average_score == 50

    def test_rounding_to_two_decimals(self):
        aggregate = summarize_readings([FakeReading(score=70), FakeReading(score=80), FakeReading(score=81)])
        assert aggregate.average_score == 77.0
        aggregate = summarize_readings([FakeReading(score=1, duration_seconds=10)])
        assert aggregate.total_time_minutes == 0.17

    def test_select_week_readings_filters_window_and_completion(self):
        window = week_window_for(datetime(2026, 10, 21, tzinfo=timezone.utc))
        inside = FakeReading(score=70)
        outside = FakeReading(score=70, created_at=window.end)
        incomplete = FakeReading(score=70, completed=False)
        assert select_week_readings([inside, outside, incomplete], window) == [inside]


class TestImprovement:
    def test_no_previous_week(self):
        assert improvement_percentage(85, None) == 0

    def test_previous_zero_average(self):
        assert improvement_percentage(85, 0) == 0

    def test_improved(self):
        assert improvement_percentage(88, 80) == 10

    def test_regressed_and_rounded(self):
        assert improvement_percentage(70, 90) == pytest.approx(-22.22)


class TestGoal:
    def test_no_goal_never_achieved(self):
        assert goal_achieved(10, None) is False

    def test_reached(self):
        assert goal_achieved(5, 5) is True

    def test_not_reached(self):
        assert goal_achieved(4, 5) is False


class TestStreak:
    def test_consecutive_days_ending_today(self):
        today = date(2026, 10, 21)
        days = {today, today - timedelta(days=1), today - timedelta(days=2)}
        assert streak_days(days, today) == 3

    def test_streak_alive_until_day_is_over(self):
        today = date(2026, 10, 21)
        days = {today - timedelta(days=1), today - timedelta(days=2)}
        assert streak_days(days, today) == 2

    def test_gap_breaks_streak(self):
        today = date(2026, 10, 21)
        days = {today, today - timedelta(days=2), today - timedelta(days=3)}
        assert streak_days(days, today) == 1

    def test_no_recent_activity(self):
        today = date(2026, 10, 21)
        assert streak_days({today - timedelta(days=5)}, today) == 0
        assert streak_days([], today) == 0


class TestSummarizeWeeks:
    def test_rollup(self):
        weeks = [
            FakeWeek(readings_completed=3, total_time_minutes=10.5, average_score=80, goal_achieved=True, total_mistakes=4),
            FakeWeek(readings_completed=1, total_time_minutes=2.25, average_score=91, total_mistakes=1),
        ]
        totals = summarize_weeks(weeks)
        assert totals == PeriodTotals(
            weeks=2,
            total_readings=4,
            total_time_minutes=12.75,
            average_score=85.5,
            goals_achieved=1,
            total_mistakes=5,
        )

    def test_empty(self):
        assert summarize_weeks([]) == PeriodTotals()
