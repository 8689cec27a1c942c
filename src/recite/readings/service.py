"""Reading sessions: persistence, completion side effects and recordings."""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from starlette.concurrency import run_in_threadpool

from recite.config import Settings
from recite.db.models import Reading, User
from recite.errors import Conflict, NotFound, PayloadTooLarge, ValidationFailed
from recite.poems.service import get_poem, refresh_poem_stats
from recite.progress.aggregation import summarize_readings
from recite.progress.service import recompute_for_reading

logger = logging.getLogger(__name__)

# Fields frozen once a reading is completed.
IMMUTABLE_WHEN_COMPLETED = ("score", "duration_seconds", "mistakes")

RECORDINGS_DIR = "recordings"
_CHUNK_SIZE = 64 * 1024
_EXTENSIONS = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/ogg": ".ogg",
}


async def _on_completed(db: AsyncSession, reading: Reading, settings: Settings) -> None:
    await refresh_poem_stats(db, reading.poem_id)
    await recompute_for_reading(db, reading, settings.week_start_weekday)


async def create_reading(db: AsyncSession, user: User, data: dict[str, Any], settings: Settings) -> Reading:
    """Store a reading for ``user``; completed readings update poem stats and weekly progress."""
    await get_poem(db, data["poem_id"])

    reading = Reading(user_id=user.id, **data)
    db.add(reading)
    await db.flush()

    if reading.completed:
        await _on_completed(db, reading, settings)

    logger.info(
        "reading_created reading_id=%s user_id=%s poem_id=%s completed=%s",
        reading.id,
        user.id,
        reading.poem_id,
        reading.completed,
    )
    return reading


async def get_reading(db: AsyncSession, reading_id: int, *, with_poem: bool = False) -> Reading:
    """Load a reading or raise ``NotFound``."""
    query = select(Reading).where(Reading.id == reading_id)
    if with_poem:
        query = query.options(selectinload(Reading.poem))
    reading = (await db.execute(query)).scalar_one_or_none()
    if reading is None:
        msg = "Reading not found"
        raise NotFound(msg)
    return reading


async def list_readings(
    db: AsyncSession,
    user_id: int,
    *,
    page: int = 1,
    limit: int = 20,
    poem_id: int | None = None,
    completed: bool | None = None,
) -> tuple[list[Reading], int]:
    """A user's readings, newest first. Returns (readings, total)."""
    conditions = [Reading.user_id == user_id]
    if poem_id is not None:
        conditions.append(Reading.poem_id == poem_id)
    if completed is not None:
        conditions.append(Reading.completed.is_(completed))

    total = (await db.execute(select(func.count()).select_from(Reading).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Reading)
        .where(*conditions)
        .options(selectinload(Reading.poem))
        .order_by(Reading.created_at.desc(), Reading.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def update_reading(db: AsyncSession, reading: Reading, changes: dict[str, Any], settings: Settings) -> Reading:
    """
    Apply a partial update.

    Completing an incomplete reading is allowed; once completed, the scored
    fields are frozen and the reading cannot be un-completed.
    """
    if reading.completed:
        frozen = [f for f in IMMUTABLE_WHEN_COMPLETED if f in changes and changes[f] != getattr(reading, f)]
        if frozen:
            msg = "A completed reading cannot be modified"
            raise Conflict(msg, errors=[{"field": f, "message": "immutable once completed"} for f in frozen])
        if changes.get("completed") is False:
            msg = "A completed reading cannot be reopened"
            raise Conflict(msg)

    was_completed = reading.completed
    for field, value in changes.items():
        if value is None and field not in ("feedback", "session_data"):
            continue
        setattr(reading, field, value)
    await db.flush()

    if reading.completed and not was_completed:
        await _on_completed(db, reading, settings)
    return reading


async def reading_stats(
    db: AsyncSession,
    user_id: int,
    *,
    start: datetime | None = None,
    end: datetime | None = None,
) -> dict[str, Any]:
    """Totals over a user's readings, optionally restricted to ``[start, end)``."""
    conditions = [Reading.user_id == user_id]
    if start is not None:
        conditions.append(Reading.created_at >= start)
    if end is not None:
        conditions.append(Reading.created_at < end)

    result = await db.execute(select(Reading).where(*conditions))
    readings = list(result.scalars().all())
    completed = [r for r in readings if r.completed]
    aggregate = summarize_readings(completed)
    by_type = Counter(m.get("type", "unknown") for r in completed for m in (r.mistakes or []))

    return {
        "total_readings": len(readings),
        "completed_readings": aggregate.readings_completed,
        "total_time_minutes": aggregate.total_time_minutes,
        "average_score": aggregate.average_score,
        "best_score": aggregate.best_score,
        "worst_score": aggregate.worst_score,
        "total_mistakes": aggregate.total_mistakes,
        "mistakes_by_type": dict(by_type),
        "unique_poems": len({r.poem_id for r in completed}),
    }


async def save_recording(db: AsyncSession, reading: Reading, upload: UploadFile, settings: Settings) -> Reading:
    """Validate and store an audio upload, then attach its public URL to the reading."""
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in settings.allowed_upload_types:
        msg = "Unsupported file type"
        raise ValidationFailed(msg, errors=[{"field": "file", "message": f"type {content_type or 'unknown'} not allowed"}])

    chunks: list[bytes] = []
    size = 0
    while chunk := await upload.read(_CHUNK_SIZE):
        size += len(chunk)
        if size > settings.max_upload_bytes:
            raise PayloadTooLarge(errors=[{"field": "file", "message": f"max {settings.max_upload_bytes} bytes"}])
        chunks.append(chunk)
    if size == 0:
        msg = "Uploaded file is empty"
        raise ValidationFailed(msg, errors=[{"field": "file", "message": "empty file"}])

    directory = Path(settings.upload_path) / RECORDINGS_DIR
    filename = f"{reading.id}-{uuid.uuid4().hex}{_EXTENSIONS.get(content_type, '.bin')}"

    def _write() -> None:
        directory.mkdir(parents=True, exist_ok=True)
        (directory / filename).write_bytes(b"".join(chunks))

    await run_in_threadpool(_write)

    reading.recording_url = f"/uploads/{RECORDINGS_DIR}/{filename}"
    await db.flush()
    logger.info("recording_saved reading_id=%s bytes=%s", reading.id, size)
    return reading
