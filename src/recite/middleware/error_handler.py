"""Global error handlers: every failure becomes a ``{success: false, message, errors?}`` envelope."""

import traceback
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from recite.config import Settings
from recite.errors import AppError

logger = structlog.get_logger()


def error_body(message: str, errors: list[dict[str, Any]] | None = None, **extra: Any) -> dict[str, Any]:  # noqa: ANN401
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return body


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{field, message}`` pairs (``body``/``query`` prefix dropped)."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in {"body", "query", "path", "header"}:
            loc = loc[1:]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return errors


def setup_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Register global exception handlers."""

    @app.exception_handler(AppError)
    async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.errors),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions (including unmatched routes) with the standard envelope."""
        message = str(exc.detail)
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=error_body("Invalid data", _field_errors(exc)),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        """Unique-key violations that escaped the services map to 409."""
        logger.warning("integrity_error", path=request.url.path, error=str(exc.orig))
        return JSONResponse(
            status_code=409,
            content=error_body("Duplicate data detected"),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always JSON, stack only in development."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        extra: dict[str, Any] = {}
        if settings.is_development:
            extra["stack"] = "".join(traceback.format_exception(exc))
        message = str(exc) if settings.is_development else "Internal server error"
        return JSONResponse(status_code=500, content=error_body(message, **extra))
