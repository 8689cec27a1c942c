"""Poem library endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.dependencies import authenticate, ensure_owner_or_admin, require_teacher_or_admin
from recite.db.models import User
from recite.dependencies import get_db
from recite.enums import Difficulty, Level
from recite.poems.schemas import PoemCreateRequest, PoemResponse, PoemSort, PoemUpdateRequest
from recite.poems.service import create_poem, deactivate_poem, get_poem, list_poems, update_poem
from recite.responses import ApiResponse, Page, Pagination, ok

router = APIRouter(prefix="/api/poems", tags=["Poems"])


@router.get("", response_model=ApiResponse[Page[PoemResponse]])
async def get_poems(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    level: Level | None = Query(None),
    difficulty: Difficulty | None = Query(None),
    theme: str | None = Query(None, max_length=50),
    search: str | None = Query(None, max_length=100),
    sort: PoemSort = Query("created_at"),
    _user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[Page[PoemResponse]]:
    """Browse the library."""
    poems, total = await list_poems(
        db,
        page=page,
        limit=limit,
        level=level,
        difficulty=difficulty,
        theme=theme,
        search=search,
        sort=sort,
    )
    return ok(
        Page(
            items=[PoemResponse.model_validate(p) for p in poems],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/{poem_id}", response_model=ApiResponse[PoemResponse])
async def get_poem_detail(
    poem_id: int,
    _user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[PoemResponse]:
    poem = await get_poem(db, poem_id)
    return ok(PoemResponse.model_validate(poem))


@router.post("", status_code=201, response_model=ApiResponse[PoemResponse])
async def post_poem(
    body: PoemCreateRequest,
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[PoemResponse]:
    """Add a poem to the library (teachers and admins)."""
    poem = await create_poem(db, user, body.model_dump())
    await db.commit()
    return ok(PoemResponse.model_validate(poem), "Poem created successfully")


@router.put("/{poem_id}", response_model=ApiResponse[PoemResponse])
async def put_poem(
    poem_id: int,
    body: PoemUpdateRequest,
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[PoemResponse]:
    """Edit a poem (its creator or an admin)."""
    poem = await get_poem(db, poem_id)
    ensure_owner_or_admin(user, poem.created_by)
    poem = await update_poem(db, poem, body.model_dump(exclude_unset=True))
    await db.commit()
    return ok(PoemResponse.model_validate(poem), "Poem updated successfully")


@router.delete("/{poem_id}", response_model=ApiResponse[None])
async def delete_poem(
    poem_id: int,
    user: User = Depends(require_teacher_or_admin),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[None]:
    """Remove a poem from the library (soft delete)."""
    poem = await get_poem(db, poem_id)
    ensure_owner_or_admin(user, poem.created_by)
    await deactivate_poem(db, poem)
    await db.commit()
    return ok(None, "Poem deleted successfully")
