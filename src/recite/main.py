"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from recite.auth.router import router as auth_router
from recite.config import Settings, get_settings
from recite.database import close_db, init_db
from recite.favorites.router import router as favorites_router
from recite.health.router import router as health_router
from recite.middleware import setup_middleware
from recite.poems.router import router as poems_router
from recite.progress.router import router as progress_router
from recite.readings.router import router as readings_router
from recite.redis_client import close_redis, init_redis
from recite.users.router import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    Path(settings.upload_path).mkdir(parents=True, exist_ok=True)
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Recite API",
        description="Backend API for the Recite poem reading practice platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(poems_router)
    app.include_router(readings_router)
    app.include_router(favorites_router)
    app.include_router(progress_router)

    # The directory is created at startup (lifespan).
    app.mount("/uploads", StaticFiles(directory=settings.upload_path, check_dir=False), name="uploads")

    return app


app = create_app()
