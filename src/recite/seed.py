"""Demo data for local development (``recite-seed`` console script).

Creates an admin, a teacher and three students, a small poem library, two
weeks of readings and a few favorites, then rebuilds the weekly progress rows
from those readings. Running it against an already seeded database is a no-op.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.password import hash_password
from recite.config import Settings, get_settings
from recite.database import close_db, get_session, init_db
from recite.db.models import Reading, User
from recite.favorites.service import add_favorite
from recite.middleware.logging import setup_logging
from recite.poems.service import create_poem, refresh_poem_stats
from recite.progress.service import recompute_week, set_weekly_goal
from recite.progress.weeks import current_week_window, previous_window

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@recite.example"

DEMO_USERS: list[dict[str, Any]] = [
    {"email": ADMIN_EMAIL, "password": "AdminPass1", "name": "Site Admin", "role": "admin", "level": "advanced"},
    {
        "email": "teacher@recite.example",
        "password": "TeacherPass1",
        "name": "Mary Dale",
        "role": "teacher",
        "level": "advanced",
        "class_id": "grade5-a",
    },
    {
        "email": "emma@recite.example",
        "password": "StudentPass1",
        "name": "Emma Martin",
        "role": "student",
        "level": "beginner",
        "class_id": "grade5-a",
    },
    {
        "email": "lucas@recite.example",
        "password": "StudentPass1",
        "name": "Lucas Bernard",
        "role": "student",
        "level": "intermediate",
        "class_id": "grade5-a",
    },
    {
        "email": "sophie@recite.example",
        "password": "StudentPass1",
        "name": "Sophie Hart",
        "role": "student",
        "level": "advanced",
        "class_id": "grade5-b",
    },
]

DEMO_POEMS: list[dict[str, Any]] = [
    {
        "title": "Who Has Seen the Wind?",
        "author": "Christina Rossetti",
        "content": (
            "Who has seen the wind?\n"
            "Neither I nor you:\n"
            "But when the leaves hang trembling,\n"
            "The wind is passing through."
        ),
        "theme": "nature",
        "level": "beginner",
        "difficulty": "easy",
        "duration_minutes": 1,
        "description": "A short question about something nobody can see.",
        "tags": ["nature", "wind", "seasons"],
    },
    {
        "title": "My Shadow",
        "author": "Robert Louis Stevenson",
        "content": (
            "I have a little shadow that goes in and out with me,\n"
            "And what can be the use of him is more than I can see.\n"
            "He is very, very like me from the heels up to the head;\n"
            "And I see him jump before me, when I jump into my bed."
        ),
        "theme": "childhood",
        "level": "beginner",
        "difficulty": "easy",
        "duration_minutes": 2,
        "description": "A child wonders about the companion that copies every move.",
        "tags": ["childhood", "play"],
    },
    {
        "title": "Hope is the thing with feathers",
        "author": "Emily Dickinson",
        "content": (
            "Hope is the thing with feathers\n"
            "That perches in the soul,\n"
            "And sings the tune without the words,\n"
            "And never stops at all."
        ),
        "theme": "feelings",
        "level": "intermediate",
        "difficulty": "medium",
        "duration_minutes": 2,
        "description": "Hope pictured as a small bird that never stops singing.",
        "tags": ["hope", "birds"],
    },
    {
        "title": "The Owl and the Pussy-Cat",
        "author": "Edward Lear",
        "content": (
            "The Owl and the Pussy-cat went to sea\n"
            "In a beautiful pea-green boat,\n"
            "They took some honey, and plenty of money,\n"
            "Wrapped up in a five-pound note."
        ),
        "theme": "adventure",
        "level": "intermediate",
        "difficulty": "medium",
        "duration_minutes": 3,
        "description": "Two unlikely friends sail away together.",
        "tags": ["adventure", "animals", "nonsense"],
    },
    {
        "title": "The Tyger",
        "author": "William Blake",
        "content": (
            "Tyger Tyger, burning bright,\n"
            "In the forests of the night;\n"
            "What immortal hand or eye,\n"
            "Could frame thy fearful symmetry?"
        ),
        "theme": "imagination",
        "level": "advanced",
        "difficulty": "hard",
        "duration_minutes": 4,
        "description": "A reader's questions to a fierce and beautiful creature.",
        "tags": ["animals", "classic"],
    },
]

# (student email, poem index, weeks ago, day in week, score, seconds, mistakes)
DEMO_READINGS: list[tuple[str, int, int, int, float, int, list[dict[str, Any]]]] = [
    ("emma@recite.example", 0, 1, 1, 89, 125, [{"word": "trembling", "position": 9, "type": "pronunciation", "severity": "low"}]),
    ("emma@recite.example", 2, 1, 3, 92, 180, []),
    ("emma@recite.example", 1, 0, 0, 94, 150, []),
    ("lucas@recite.example", 3, 1, 2, 78, 245, [
        {"word": "pea-green", "position": 14, "type": "pronunciation", "severity": "medium"},
        {"word": "five-pound", "position": 25, "type": "fluency", "severity": "low"},
    ]),
    ("lucas@recite.example", 1, 1, 5, 85, 195, [{"word": "shadow", "position": 4, "type": "accuracy", "severity": "low"}]),
    ("lucas@recite.example", 3, 0, 1, 88, 230, []),
    ("sophie@recite.example", 4, 0, 2, 81, 260, [{"word": "symmetry", "position": 20, "type": "fluency", "severity": "medium"}]),
]

DEMO_FAVORITES: list[tuple[str, int]] = [
    ("emma@recite.example", 2),
    ("emma@recite.example", 4),
    ("lucas@recite.example", 3),
]

DEMO_GOALS: dict[str, int] = {
    "emma@recite.example": 3,
    "lucas@recite.example": 2,
}


@dataclass(frozen=True)
class SeedSummary:
    users: int = 0
    poems: int = 0
    readings: int = 0
    favorites: int = 0
    progress_rows: int = 0

    @property
    def skipped(self) -> bool:
        return self.users == 0


async def seed(db: AsyncSession, settings: Settings, *, now: datetime | None = None) -> SeedSummary:
    """Insert the demo data set. The caller commits."""
    if now is None:
        now = datetime.now(timezone.utc)

    if (await db.execute(select(User.id).where(User.email == ADMIN_EMAIL))).scalar_one_or_none() is not None:
        logger.info("seed_skipped reason=already_seeded")
        return SeedSummary()

    users: dict[str, User] = {}
    for spec in DEMO_USERS:
        values = dict(spec)
        user = User(password_hash=hash_password(values.pop("password")), **values)
        db.add(user)
        users[user.email] = user
    await db.flush()

    teacher = users["teacher@recite.example"]
    poems = [await create_poem(db, teacher, dict(data)) for data in DEMO_POEMS]

    current = current_week_window(now, settings.week_start_weekday)
    windows = [current, previous_window(current)]
    for email, poem_index, weeks_ago, day, score, seconds, mistakes in DEMO_READINGS:
        # Readings of the running week never lie in the future.
        at = min(windows[weeks_ago].start + timedelta(days=day, hours=16), now)
        db.add(
            Reading(
                user_id=users[email].id,
                poem_id=poems[poem_index].id,
                score=score,
                duration_seconds=seconds,
                completed=True,
                mistakes=mistakes,
                session_data={"start_time": at.isoformat(), "pause_count": 0, "total_pause_time": 0},
                created_at=at,
            )
        )
    await db.flush()
    for poem in poems:
        await refresh_poem_stats(db, poem.id)

    for email, poem_index in DEMO_FAVORITES:
        await add_favorite(db, users[email].id, poems[poem_index].id)

    students = [user for user in users.values() if user.role == "student"]
    progress_rows = 0
    for student in students:
        for window in reversed(windows):
            await recompute_week(db, student.id, window, now=now)
            progress_rows += 1
        if student.email in DEMO_GOALS:
            await set_weekly_goal(
                db, student.id, DEMO_GOALS[student.email], week_start=settings.week_start_weekday, now=now
            )

    summary = SeedSummary(
        users=len(users),
        poems=len(poems),
        readings=len(DEMO_READINGS),
        favorites=len(DEMO_FAVORITES),
        progress_rows=progress_rows,
    )
    logger.info(
        "seed_completed users=%s poems=%s readings=%s favorites=%s progress_rows=%s",
        summary.users,
        summary.poems,
        summary.readings,
        summary.favorites,
        summary.progress_rows,
    )
    return summary


async def _run(settings: Settings) -> SeedSummary:
    await init_db(settings.database_url)
    try:
        async for db in get_session():
            summary = await seed(db, settings)
            await db.commit()
        return summary
    finally:
        await close_db()


def main() -> None:
    """Seed the configured database with demo accounts and content."""
    settings = get_settings()
    setup_logging(settings)
    summary = asyncio.run(_run(settings))
    if summary.skipped:
        print("Database already seeded; nothing to do.")  # noqa: T201
        return
    print(f"Seeded {summary.users} users, {summary.poems} poems, {summary.readings} readings.")  # noqa: T201
    for spec in DEMO_USERS:
        print(f"  {spec['role']:<8} {spec['email']} / {spec['password']}")  # noqa: T201


if __name__ == "__main__":
    main()
