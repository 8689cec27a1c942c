"""Favorite poem endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.dependencies import authenticate
from recite.db.models import User
from recite.dependencies import get_db
from recite.errors import NotFound
from recite.favorites.schemas import FavoriteRequest, FavoriteResponse, FavoriteStatus, ToggleResponse
from recite.favorites.service import add_favorite, is_favorite, list_favorites, remove_favorite, toggle_favorite
from recite.responses import ApiResponse, Page, Pagination, ok

router = APIRouter(prefix="/api/favorites", tags=["Favorites"])


@router.get("", response_model=ApiResponse[Page[FavoriteResponse]])
async def get_favorites(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[Page[FavoriteResponse]]:
    favorites, total = await list_favorites(db, user.id, page=page, limit=limit)
    return ok(
        Page(
            items=[FavoriteResponse.model_validate(f) for f in favorites],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.post("", status_code=201, response_model=ApiResponse[FavoriteResponse])
async def post_favorite(
    body: FavoriteRequest,
    response: Response,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[FavoriteResponse]:
    """Add a poem to favorites. 201 when new, 200 when it already was one."""
    favorite, created = await add_favorite(db, user.id, body.poem_id)
    await db.commit()
    if not created:
        response.status_code = 200
        return ok(FavoriteResponse.model_validate(favorite), "Poem already in favorites")
    return ok(FavoriteResponse.model_validate(favorite), "Poem added to favorites")


@router.delete("/{poem_id}", response_model=ApiResponse[None])
async def delete_favorite(
    poem_id: int,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[None]:
    if not await remove_favorite(db, user.id, poem_id):
        msg = "Favorite not found"
        raise NotFound(msg)
    await db.commit()
    return ok(None, "Poem removed from favorites")


@router.post("/toggle", response_model=ApiResponse[ToggleResponse])
async def post_toggle(
    body: FavoriteRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[ToggleResponse]:
    """Add the poem if absent, remove it otherwise."""
    state = await toggle_favorite(db, user.id, body.poem_id)
    await db.commit()
    action = "added" if state else "removed"
    return ok(
        ToggleResponse(poem_id=body.poem_id, is_favorite=state, action=action),
        f"Poem {action} {'to' if state else 'from'} favorites",
    )


@router.get("/check/{poem_id}", response_model=ApiResponse[FavoriteStatus])
async def get_check(
    poem_id: int,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[FavoriteStatus]:
    return ok(FavoriteStatus(poem_id=poem_id, is_favorite=await is_favorite(db, user.id, poem_id)))
