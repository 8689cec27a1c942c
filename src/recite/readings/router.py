"""Reading session endpoints."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from recite.auth.dependencies import authenticate, ensure_owner_or_admin
from recite.config import Settings
from recite.db.models import User
from recite.dependencies import get_app_settings, get_db
from recite.errors import Forbidden, ValidationFailed
from recite.readings.schemas import (
    ReadingCreateRequest,
    ReadingDetailResponse,
    ReadingResponse,
    ReadingStatsResponse,
    ReadingUpdateRequest,
)
from recite.readings.service import (
    create_reading,
    get_reading,
    list_readings,
    reading_stats,
    save_recording,
    update_reading,
)
from recite.responses import ApiResponse, Page, Pagination, ok

router = APIRouter(prefix="/api/readings", tags=["Readings"])


def _ensure_owner(user: User, owner_id: int) -> None:
    if user.id != owner_id:
        msg = "Only the reader can modify this reading"
        raise Forbidden(msg)


@router.post("", status_code=201, response_model=ApiResponse[ReadingResponse])
async def post_reading(
    body: ReadingCreateRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[ReadingResponse]:
    """Record a reading session for the current user."""
    reading = await create_reading(db, user, body.model_dump(mode="json"), settings)
    await db.commit()
    return ok(ReadingResponse.model_validate(reading), "Reading saved successfully")


@router.get("", response_model=ApiResponse[Page[ReadingDetailResponse]])
async def get_readings(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    poem_id: int | None = Query(None, ge=1),
    completed: bool | None = Query(None),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[Page[ReadingDetailResponse]]:
    """Own reading history, newest first."""
    readings, total = await list_readings(
        db, user.id, page=page, limit=limit, poem_id=poem_id, completed=completed
    )
    return ok(
        Page(
            items=[ReadingDetailResponse.model_validate(r) for r in readings],
            pagination=Pagination.build(page, limit, total),
        )
    )


@router.get("/stats", response_model=ApiResponse[ReadingStatsResponse])
async def get_reading_stats(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[ReadingStatsResponse]:
    """Totals over own readings; ``end_date`` is inclusive."""
    if start_date and end_date and start_date > end_date:
        msg = "start_date must not be after end_date"
        raise ValidationFailed(msg, errors=[{"field": "start_date", "message": msg}])

    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else None
    end = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc) if end_date else None
    stats = await reading_stats(db, user.id, start=start, end=end)
    return ok(ReadingStatsResponse(**stats))


@router.get("/{reading_id}", response_model=ApiResponse[ReadingDetailResponse])
async def get_reading_detail(
    reading_id: int,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[ReadingDetailResponse]:
    reading = await get_reading(db, reading_id, with_poem=True)
    ensure_owner_or_admin(user, reading.user_id)
    return ok(ReadingDetailResponse.model_validate(reading))


@router.put("/{reading_id}", response_model=ApiResponse[ReadingResponse])
async def put_reading(
    reading_id: int,
    body: ReadingUpdateRequest,
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[ReadingResponse]:
    """Update own reading. Scored fields are frozen once completed."""
    reading = await get_reading(db, reading_id)
    _ensure_owner(user, reading.user_id)
    reading = await update_reading(db, reading, body.model_dump(mode="json", exclude_unset=True), settings)
    await db.commit()
    return ok(ReadingResponse.model_validate(reading), "Reading updated successfully")


@router.post("/{reading_id}/recording", response_model=ApiResponse[ReadingResponse])
async def post_recording(
    reading_id: int,
    file: UploadFile = File(...),
    user: User = Depends(authenticate),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> ApiResponse[ReadingResponse]:
    """Attach an audio recording to own reading."""
    reading = await get_reading(db, reading_id)
    _ensure_owner(user, reading.user_id)
    reading = await save_recording(db, reading, file, settings)
    await db.commit()
    return ok(ReadingResponse.model_validate(reading), "Recording uploaded successfully")
