"""Weekly progress recomputation against a real (SQLite) database."""

from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, select

from recite.db.models import Progress
from recite.progress.service import (
    class_progress,
    get_current_progress,
    get_progress,
    list_recent_progress,
    monthly_stats,
    recompute_for_reading,
    recompute_week,
    set_weekly_goal,
)
from recite.progress.weeks import current_week_window, previous_window
from tests.conftest import create_reading, create_user

# Wednesday; the week runs Sunday 2026-10-18 .. Saturday 2026-10-24.
NOW = datetime(2026, 10, 21, 12, 0, tzinfo=timezone.utc)
WINDOW = current_week_window(NOW)


def _at(day: int, hour: int = 10) -> datetime:
    return datetime(2026, 10, day, hour, 0, tzinfo=timezone.utc)


class TestRecomputeWeek:
    async def test_aggregates_completed_readings(self, db_session, student, poem):
        await create_reading(db_session, student, poem, score=80, duration_seconds=90, created_at=_at(19),
                             mistakes=[{"word": "wood", "position": 5, "type": "pronunciation", "severity": "low"}])
        await create_reading(db_session, student, poem, score=90, duration_seconds=45, created_at=_at(20))

        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)

        assert progress.week_start == date(2026, 10, 18)
        assert progress.readings_completed == 2
        assert progress.average_score == 85
        assert progress.best_score == 90
        assert progress.worst_score == 80
        assert progress.total_time_minutes == 2.25
        assert progress.total_mistakes == 1
        assert progress.improvement_percentage == 0

    async def test_ignores_incomplete_and_out_of_window(self, db_session, student, poem):
        await create_reading(db_session, student, poem, score=70, created_at=_at(19))
        await create_reading(db_session, student, poem, score=10, completed=False, created_at=_at(19))
        await create_reading(db_session, student, poem, score=99, created_at=WINDOW.end)
        await create_reading(db_session, student, poem, score=99, created_at=WINDOW.start - timedelta(seconds=1))

        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.readings_completed == 1
        assert progress.average_score == 70

    async def test_empty_week_creates_zero_row(self, db_session, student):
        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.readings_completed == 0
        assert progress.average_score == 0
        assert progress.goal_achieved is False
        assert progress.streak_days == 0

    async def test_idempotent_single_row(self, db_session, student, poem):
        await create_reading(db_session, student, poem, score=75, created_at=_at(19))

        first = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        snapshot = (first.readings_completed, first.average_score, first.streak_days, first.improvement_percentage)
        second = await recompute_week(db_session, student.id, WINDOW, now=NOW)

        assert (second.readings_completed, second.average_score, second.streak_days,
                second.improvement_percentage) == snapshot
        count = await db_session.scalar(select(func.count()).select_from(Progress))
        assert count == 1

    async def test_recompute_picks_up_new_readings(self, db_session, student, poem):
        await create_reading(db_session, student, poem, score=60, created_at=_at(19))
        await recompute_week(db_session, student.id, WINDOW, now=NOW)

        await create_reading(db_session, student, poem, score=100, created_at=_at(20))
        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.readings_completed == 2
        assert progress.average_score == 80

    async def test_improvement_against_previous_week(self, db_session, student, poem):
        previous = previous_window(WINDOW)
        await create_reading(db_session, student, poem, score=80, created_at=previous.start + timedelta(days=2))
        await create_reading(db_session, student, poem, score=88, created_at=_at(19))

        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.improvement_percentage == 10

    async def test_empty_week_after_active_week_has_no_improvement(self, db_session, student, poem):
        previous = previous_window(WINDOW)
        await create_reading(db_session, student, poem, score=80, created_at=previous.start + timedelta(days=2))

        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.readings_completed == 0
        assert progress.average_score == 0
        assert progress.improvement_percentage == 0

    async def test_late_reading_refreshes_following_week(self, db_session, student, poem):
        await create_reading(db_session, student, poem, score=88, created_at=_at(19))
        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.improvement_percentage == 0

        previous = previous_window(WINDOW)
        late = await create_reading(db_session, student, poem, score=80, created_at=previous.start + timedelta(days=2))
        await recompute_for_reading(db_session, late)

        progress = await get_progress(db_session, student.id, WINDOW.week_start)
        assert progress.improvement_percentage == 10

    async def test_following_week_without_row_is_not_created(self, db_session, student, poem):
        previous = previous_window(WINDOW)
        late = await create_reading(db_session, student, poem, score=80, created_at=previous.start + timedelta(days=2))
        await recompute_for_reading(db_session, late)

        assert await get_progress(db_session, student.id, WINDOW.week_start) is None
        assert await get_progress(db_session, student.id, previous.week_start) is not None

    async def test_streak_counts_consecutive_days(self, db_session, student, poem):
        for day in (17, 19, 20, 21):
            await create_reading(db_session, student, poem, score=70, created_at=_at(day, 8))

        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        # 17th breaks the run (nothing on the 18th).
        assert progress.streak_days == 3

    async def test_users_are_isolated(self, db_session, student, other_student, poem):
        await create_reading(db_session, other_student, poem, score=40, created_at=_at(19))
        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.readings_completed == 0


class TestGoals:
    async def test_set_goal_evaluates_achievement(self, db_session, student, poem):
        await create_reading(db_session, student, poem, score=70, created_at=_at(19))
        await create_reading(db_session, student, poem, score=70, created_at=_at(20))

        progress = await set_weekly_goal(db_session, student.id, 3, now=NOW)
        assert progress.weekly_goal == 3
        assert progress.goal_achieved is False

        await create_reading(db_session, student, poem, score=70, created_at=_at(21, 9))
        progress = await recompute_week(db_session, student.id, WINDOW, now=NOW)
        assert progress.weekly_goal == 3
        assert progress.goal_achieved is True

    async def test_goal_carries_into_new_week(self, db_session, student):
        last_week_now = NOW - timedelta(days=7)
        await set_weekly_goal(db_session, student.id, 4, now=last_week_now)

        progress = await get_current_progress(db_session, student.id, now=NOW)
        assert progress.weekly_goal == 4

    async def test_cleared_goal_stays_cleared(self, db_session, student):
        await set_weekly_goal(db_session, student.id, 5, now=NOW - timedelta(weeks=2))
        await set_weekly_goal(db_session, student.id, None, now=NOW - timedelta(weeks=1))

        progress = await get_current_progress(db_session, student.id, now=NOW)
        assert progress.weekly_goal is None
        assert progress.goal_achieved is False


class TestQueries:
    async def test_list_recent_newest_first(self, db_session, student):
        for weeks_back in (2, 0, 1):
            await get_current_progress(db_session, student.id, now=NOW - timedelta(weeks=weeks_back))

        rows = await list_recent_progress(db_session, student.id, 2, now=NOW)
        assert [r.week_start for r in rows] == [date(2026, 10, 18), date(2026, 10, 11)]

    async def test_monthly_stats(self, db_session, student, poem):
        await create_reading(db_session, student, poem, score=80, duration_seconds=60, created_at=_at(6))
        await create_reading(db_session, student, poem, score=90, duration_seconds=120, created_at=_at(19))
        await get_current_progress(db_session, student.id, now=_at(7))
        await get_current_progress(db_session, student.id, now=NOW)

        rows, totals = await monthly_stats(db_session, student.id, 2026, 10)
        assert [r.week_start for r in rows] == [date(2026, 10, 4), date(2026, 10, 18)]
        assert totals.total_readings == 2
        assert totals.total_time_minutes == 3
        assert totals.average_score == 85

    async def test_class_progress(self, db_session, student, other_student, poem):
        classmate = await create_user(db_session, email="classmate@example.com", name="Cara", class_id="class-a")
        await create_reading(db_session, student, poem, score=90, created_at=_at(19))
        await get_current_progress(db_session, student.id, now=NOW)

        week_start, rows = await class_progress(db_session, "class-a", now=NOW)
        assert week_start == date(2026, 10, 18)
        by_id = {user.id: progress for user, progress in rows}
        assert set(by_id) == {student.id, classmate.id}
        assert by_id[student.id].readings_completed == 1
        assert by_id[classmate.id] is None

        _, everyone = await class_progress(db_session, None, now=NOW)
        assert {user.id for user, _ in everyone} == {student.id, classmate.id, other_student.id}
