"""Health, readiness, and version endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from recite.config import Settings
from recite.dependencies import get_app_settings, get_db
from recite.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health(settings: Settings = Depends(get_app_settings)) -> dict[str, object]:  # noqa: B008
    """Liveness check: returns 200 if the process is alive."""
    return {
        "success": True,
        "message": "Server is running",
        "data": {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        },
    }


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_db),  # noqa: B008
) -> JSONResponse:
    """Readiness check: checks DB and Redis connectivity. 503 when degraded."""
    checks: dict[str, str] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    try:
        redis = get_redis()
        await redis.ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={
            "success": all_ok,
            "message": "ready" if all_ok else "degraded",
            "data": {"status": "ready" if all_ok else "degraded", "checks": checks},
        },
    )


@router.get("/version")
async def version(settings: Settings = Depends(get_app_settings)) -> dict[str, object]:  # noqa: B008
    """Return API version and environment."""
    return {
        "success": True,
        "message": "",
        "data": {"version": settings.app_version, "environment": settings.environment},
    }
