"""Poem library business logic."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from recite.db.models import Poem, Reading, User
from recite.errors import NotFound

logger = logging.getLogger(__name__)

_NULLABLE_FIELDS = frozenset({"description"})

_SORT_COLUMNS = {
    "created_at": Poem.created_at.desc(),
    "title": Poem.title.asc(),
    "read_count": Poem.read_count.desc(),
    "average_score": Poem.average_score.desc(),
}


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _apply_filters(
    query: Select,  # type: ignore[type-arg]
    *,
    level: str | None,
    difficulty: str | None,
    theme: str | None,
    search: str | None,
) -> Select:  # type: ignore[type-arg]
    query = query.where(Poem.is_active.is_(True))
    if level:
        query = query.where(Poem.level == level)
    if difficulty:
        query = query.where(Poem.difficulty == difficulty)
    if theme:
        query = query.where(func.lower(Poem.theme) == theme.lower())
    if search and search.strip():
        pattern = _like_pattern(search.strip())
        query = query.where(
            or_(
                Poem.title.ilike(pattern, escape="\\"),
                Poem.author.ilike(pattern, escape="\\"),
                Poem.content.ilike(pattern, escape="\\"),
            )
        )
    return query


async def list_poems(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 20,
    level: str | None = None,
    difficulty: str | None = None,
    theme: str | None = None,
    search: str | None = None,
    sort: str = "created_at",
) -> tuple[list[Poem], int]:
    """Active poems matching the filters, one page at a time. Returns (poems, total)."""
    filters = {"level": level, "difficulty": difficulty, "theme": theme, "search": search}

    count_query = _apply_filters(select(func.count()).select_from(Poem), **filters)
    total = (await db.execute(count_query)).scalar_one()

    query = (
        _apply_filters(select(Poem), **filters)
        .order_by(_SORT_COLUMNS.get(sort, _SORT_COLUMNS["created_at"]), Poem.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_poem(db: AsyncSession, poem_id: int, *, include_inactive: bool = False) -> Poem:
    """Load a poem or raise ``NotFound``."""
    poem = await db.get(Poem, poem_id)
    if poem is None or (not poem.is_active and not include_inactive):
        msg = "Poem not found"
        raise NotFound(msg)
    return poem


async def create_poem(db: AsyncSession, creator: User, data: dict[str, Any]) -> Poem:
    poem = Poem(**data, created_by=creator.id)
    db.add(poem)
    await db.flush()
    logger.info("poem_created poem_id=%s created_by=%s", poem.id, creator.id)
    return poem


async def update_poem(db: AsyncSession, poem: Poem, changes: dict[str, Any]) -> Poem:
    """Apply a partial update. ``None`` only clears nullable fields."""
    for field, value in changes.items():
        if value is None and field not in _NULLABLE_FIELDS:
            continue
        setattr(poem, field, value)
    await db.flush()
    await db.refresh(poem)
    return poem


async def deactivate_poem(db: AsyncSession, poem: Poem) -> None:
    """Soft delete: the poem disappears from the library, readings keep their link."""
    poem.is_active = False
    await db.flush()
    logger.info("poem_deactivated poem_id=%s", poem.id)


async def refresh_poem_stats(db: AsyncSession, poem_id: int) -> Poem | None:
    """Recount completed readings and recompute the average score of a poem."""
    poem = await db.get(Poem, poem_id)
    if poem is None:
        return None
    count, average = (
        await db.execute(
            select(func.count(Reading.id), func.avg(Reading.score)).where(
                Reading.poem_id == poem_id, Reading.completed.is_(True)
            )
        )
    ).one()
    poem.read_count = count
    poem.average_score = round(float(average), 2) if average is not None else None
    await db.flush()
    return poem
