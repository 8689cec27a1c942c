"""Shared test fixtures.

Every test gets a fresh app bound to its own SQLite file (``aiosqlite``) with
tables created from the ORM metadata. Redis is left uninitialized, so rate
limiting passes requests through unless a test injects a mock.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.jwt import create_access_token
from recite.auth.password import hash_password
from recite.config import Settings
from recite.database import close_db, get_engine, get_session, init_db
from recite.db.base import Base
from recite.db.models import Poem, Reading, User
from recite.main import create_app

TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"
TEST_PASSWORD = "SecurePass1"


def make_settings(tmp_path: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {
        "environment": "test",
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        "jwt_secret": TEST_SECRET,
        "upload_path": str(tmp_path / "uploads"),
        "log_format": "console",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[arg-type]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    """App with an initialized database (lifespan is not run by ASGITransport)."""
    application = create_app(settings)
    await init_db(settings.database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield application
    await close_db()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def bearer(user: User, settings: Settings) -> dict[str, str]:
    token = create_access_token(user.id, user.email, user.role, settings)
    return {"Authorization": f"Bearer {token}"}


async def create_user(
    db: AsyncSession,
    *,
    email: str,
    role: str = "student",
    name: str = "Test User",
    level: str = "beginner",
    class_id: str | None = None,
    is_active: bool = True,
    password: str = TEST_PASSWORD,
) -> User:
    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role,
        level=level,
        class_id=class_id,
        is_active=is_active,
    )
    db.add(user)
    await db.commit()
    return user


async def create_poem(db: AsyncSession, creator: User, **overrides: object) -> Poem:
    values: dict[str, object] = {
        "title": "The Road Not Taken",
        "author": "Robert Frost",
        "content": "Two roads diverged in a yellow wood,\nAnd sorry I could not travel both",
        "theme": "nature",
        "level": "beginner",
        "difficulty": "easy",
        "duration_minutes": 3,
        "tags": ["classic"],
    }
    values.update(overrides)
    poem = Poem(created_by=creator.id, **values)
    db.add(poem)
    await db.commit()
    return poem


async def create_reading(
    db: AsyncSession,
    user: User,
    poem: Poem,
    *,
    score: float,
    duration_seconds: int = 120,
    completed: bool = True,
    created_at: datetime | None = None,
    mistakes: list[dict[str, object]] | None = None,
) -> Reading:
    reading = Reading(
        user_id=user.id,
        poem_id=poem.id,
        score=score,
        duration_seconds=duration_seconds,
        completed=completed,
        mistakes=mistakes or [],
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(reading)
    await db.commit()
    return reading


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> User:
    return await create_user(db_session, email="student@example.com", name="Alice Student", class_id="class-a")


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession) -> User:
    return await create_user(db_session, email="other@example.com", name="Bob Student", class_id="class-b")


@pytest_asyncio.fixture
async def teacher(db_session: AsyncSession) -> User:
    return await create_user(db_session, email="teacher@example.com", role="teacher", name="Tom Teacher", class_id="class-a")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, email="admin@example.com", role="admin", name="Ada Admin")


@pytest_asyncio.fixture
async def poem(db_session: AsyncSession, teacher: User) -> Poem:
    return await create_poem(db_session, teacher)
