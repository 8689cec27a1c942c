"""Process entry point: run the API under uvicorn with fatal-error hooks installed."""

from __future__ import annotations

import asyncio
import sys
from types import TracebackType
from typing import Any

import structlog
import uvicorn

from recite.config import get_settings
from recite.middleware.logging import setup_logging

logger = structlog.get_logger()


def _log_uncaught(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    """``sys.excepthook``: log the error. The interpreter then exits with status 1."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logger.critical("uncaught_exception", exc_info=(exc_type, exc, tb))


class ServerRunner:
    """
    Serves uvicorn and treats unhandled event-loop errors as fatal.

    asyncio discards exceptions raised inside a loop exception handler: the
    handler flags the failure and asks uvicorn to shut down, and ``run``
    turns the flag into the exit status.
    """

    def __init__(self, server: uvicorn.Server) -> None:
        self.server = server
        self.fatal = False

    def handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        logger.critical(
            "unhandled_loop_exception",
            message=context.get("message"),
            exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        )
        self.fatal = True
        self.server.should_exit = True

    async def serve(self) -> None:
        asyncio.get_running_loop().set_exception_handler(self.handle_loop_exception)
        await self.server.serve()

    def run(self) -> int:
        """Serve until shutdown. Returns the process exit status."""
        asyncio.run(self.serve())
        if self.fatal:
            logger.critical("server_stopped_after_fatal_error")
            return 1
        return 0


def run() -> None:
    """Start the API server (``recite-api`` console script)."""
    settings = get_settings()
    setup_logging(settings)
    sys.excepthook = _log_uncaught

    config = uvicorn.Config(
        "recite.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
    )
    runner = ServerRunner(uvicorn.Server(config))
    logger.info("server_starting", host=settings.host, port=settings.port, environment=settings.environment)
    status = runner.run()
    if status:
        sys.exit(status)


if __name__ == "__main__":
    run()
