"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from devsweep.api.routes import health, runs
from devsweep.core.config import AppSettings
from devsweep.core.logging import configure_logging
from devsweep.orchestration import Runtime, build_runtime


def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Tests pass a prebuilt ``runtime``; otherwise one is built from settings
    at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        rt = runtime
        if rt is None:
            settings = AppSettings()
            configure_logging(json_output=settings.log_json, level=settings.log_level)
            rt = build_runtime(settings)
        app.state.settings = rt.settings
        app.state.runtime = rt
        yield
        close = getattr(rt.directory, "close", None)
        if close is not None:
            await close()

    app = FastAPI(
        title="devsweep",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(runs.router)
    return app
