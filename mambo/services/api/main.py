"""FastAPI status service exposing health, version and live probe counters."""

import logging
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from mambo.core.config import Settings

StatusProvider = Callable[[], dict[str, Any]]


def create_app(settings: Settings, status_provider: StatusProvider, logger: logging.Logger) -> FastAPI:
    """Build the status app around a collector status callable."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "api_startup",
            extra={"service": "api", "env": settings.ENV, "version": settings.VERSION},
        )
        yield

    app = FastAPI(title=settings.APP_NAME, version=settings.VERSION, lifespan=lifespan)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Return process liveness status."""

        return {"status": "ok"}

    @app.get("/version")
    def version() -> dict[str, str]:
        """Return application metadata from shared settings."""

        return {
            "name": settings.APP_NAME,
            "version": settings.VERSION,
            "env": settings.ENV,
        }

    @app.get("/probes")
    def probes() -> dict[str, Any]:
        """Return scheduler and dispatcher counters."""

        return status_provider()

    return app


class StatusServer:
    """Run uvicorn on a daemon thread next to the collector threads."""

    def __init__(self, app: FastAPI, host: str, port: int) -> None:
        self._server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
        self._thread = threading.Thread(target=self._server.run, name="status-api", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._server.should_exit = True
        self._thread.join(timeout)
