"""Favorite poems: idempotent add, remove, toggle and lookups."""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from recite.db.models import Favorite, Poem
from recite.poems.service import get_poem

logger = logging.getLogger(__name__)


async def get_favorite(db: AsyncSession, user_id: int, poem_id: int) -> Favorite | None:
    result = await db.execute(
        select(Favorite)
        .where(Favorite.user_id == user_id, Favorite.poem_id == poem_id)
        .options(selectinload(Favorite.poem))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def is_favorite(db: AsyncSession, user_id: int, poem_id: int) -> bool:
    result = await db.execute(
        select(Favorite.id).where(Favorite.user_id == user_id, Favorite.poem_id == poem_id)
    )
    return result.scalar_one_or_none() is not None


async def list_favorites(
    db: AsyncSession,
    user_id: int,
    *,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Favorite], int]:
    """Favorites of active poems, most recent first. Returns (favorites, total)."""
    conditions = [Favorite.user_id == user_id, Poem.is_active.is_(True)]
    count_query = select(func.count()).select_from(Favorite).join(Poem, Poem.id == Favorite.poem_id).where(*conditions)
    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        select(Favorite)
        .join(Poem, Poem.id == Favorite.poem_id)
        .where(*conditions)
        .options(selectinload(Favorite.poem))
        .order_by(Favorite.created_at.desc(), Favorite.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def add_favorite(db: AsyncSession, user_id: int, poem_id: int) -> tuple[Favorite, bool]:
    """
    Bookmark a poem. Returns ``(favorite, created)``.

    Adding an existing favorite is a no-op. A concurrent duplicate insert is
    absorbed by the unique constraint after rolling the session back.
    """
    await get_poem(db, poem_id)

    existing = await get_favorite(db, user_id, poem_id)
    if existing is not None:
        return existing, False

    db.add(Favorite(user_id=user_id, poem_id=poem_id))
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        existing = await get_favorite(db, user_id, poem_id)
        if existing is None:
            raise
        return existing, False

    favorite = await get_favorite(db, user_id, poem_id)
    assert favorite is not None
    logger.info("favorite_added user_id=%s poem_id=%s", user_id, poem_id)
    return favorite, True


async def remove_favorite(db: AsyncSession, user_id: int, poem_id: int) -> bool:
    """Delete a favorite. Returns False when there was nothing to delete."""
    result = await db.execute(
        delete(Favorite).where(Favorite.user_id == user_id, Favorite.poem_id == poem_id)
    )
    return result.rowcount > 0


async def toggle_favorite(db: AsyncSession, user_id: int, poem_id: int) -> bool:
    """Flip the favorite state. Returns the new state."""
    if await remove_favorite(db, user_id, poem_id):
        logger.info("favorite_removed user_id=%s poem_id=%s", user_id, poem_id)
        return False
    await add_favorite(db, user_id, poem_id)
    return True
