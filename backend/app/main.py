"""FastAPI application - legal clause QA."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI

from backend.app.api.deps import Services, build_inmemory_services, build_sql_services
from backend.app.api.errors import register_exception_handlers
from backend.app.api.routes.chat import router as chat_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.legal_clauses import router as legal_clauses_router
from backend.app.api.routes.legal_docs import router as legal_docs_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.cache.ttl import run_periodic_sweep
from backend.app.config import get_settings
from backend.app.db.engine import create_async_engine_from_settings, create_session_factory, create_tables

logger = logging.getLogger(__name__)

APP_TITLE = "Legal Clause QA API"
APP_VERSION = "0.1.0"


def create_app(services: Services | None = None) -> FastAPI:
    """Build the application.

    Args:
        services: Pre-built services (tests). When omitted the lifespan wires
            SQL stores from DATABASE_URL, or in-memory stores if it is unset.
    """

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = None
        if services is not None:
            app.state.services = services
        else:
            settings = get_settings()
            if settings.database_url:
                engine = create_async_engine_from_settings(settings)
                await create_tables(engine)
                app.state.services = build_sql_services(settings, create_session_factory(engine))
            else:
                logger.warning("DATABASE_URL not set, using in-memory stores")
                app.state.services = build_inmemory_services(settings)

        current: Services = app.state.services
        sweeper: asyncio.Task[None] | None = None
        interval = current.settings.cache_sweep_interval_seconds
        if interval > 0:
            sweeper = asyncio.create_task(run_periodic_sweep(current.cache, interval))

        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
            if engine is not None:
                await engine.dispose()

    app = FastAPI(title=APP_TITLE, version=APP_VERSION, lifespan=lifespan)
    register_exception_handlers(app)

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(chat_router)
    app.include_router(legal_docs_router)
    app.include_router(legal_clauses_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": APP_TITLE, "version": APP_VERSION}

    return app


app = create_app()
