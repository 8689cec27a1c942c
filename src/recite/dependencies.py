"""Shared FastAPI dependencies."""

from fastapi import Request

from recite.config import Settings, get_settings
from recite.database import get_session as _get_session

get_db = _get_session


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with (falls back to the environment)."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def client_ip(request: Request) -> str:
    """Best-effort client address for rate limiting and token bookkeeping."""
    return request.client.host if request.client else "unknown"
