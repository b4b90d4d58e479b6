"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown: it builds the database
engine and the service graph (unless one was passed in, as the tests
do), starts the expiry reaper, and tears both down again.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from warden import __version__
from warden.api import api_router
from warden.api.errors import register_error_handlers
from warden.config import Settings, settings as default_settings
from warden.db.engine import build_engine, build_session_factory
from warden.middleware.request_id import RequestIdMiddleware
from warden.services.reaper import ReaperWorker
from warden.services.wiring import Services, build_services, sql_stores

logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[Services] = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Passing `services` wires the app immediately (no database engine is
    created); otherwise the lifespan builds SQL-backed services.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown lifecycle."""
        logger.info(
            "warden.starting",
            version=__version__,
            environment=settings.environment,
            port=settings.port,
        )

        engine = None
        if getattr(app.state, "services", None) is None:
            engine = build_engine(settings.database_url, echo=settings.debug)
            app.state.services = build_services(
                settings, sql_stores(build_session_factory(engine))
            )

        reaper_task = None
        if settings.reaper_enabled:
            reaper = ReaperWorker(
                app.state.services.reaper, interval=settings.reaper_interval_seconds
            )
            reaper_task = asyncio.create_task(reaper.run_loop())

        yield

        logger.info("warden.shutdown")

        if reaper_task is not None:
            reaper.stop()
            reaper_task.cancel()
            try:
                await reaper_task
            except asyncio.CancelledError:
                pass

        if engine is not None:
            await engine.dispose()

    app = FastAPI(
        title="Warden",
        description="Authentication with emailed 2FA, rotating sessions and account lifecycle",
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(RequestIdMiddleware)
    register_error_handlers(app)
    app.include_router(api_router)

    return app
