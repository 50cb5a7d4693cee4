"""
Search API Application Entry Point

This module defines the FastAPI application factory: it owns the lifecycle of
the Elasticsearch client and the database engine, registers routers and
installs the global exception handlers.

Design Goals
------------
- Shared resources opened once at startup, closed at shutdown
- No ambient globals: handlers reach resources through app.state
- Test-friendly via create_app() with injectable client and sessions
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import Settings
from .core.errors import search_sync_exception_handler, unhandled_exception_handler
from .core.exceptions import SearchSyncError
from .db.session import create_engine_from_settings, create_session_factory
from .documents.schema import load_catalog
from .engine.client import SearchEngineClient
from .engine.executor import SearchExecutor
from .service import SearchSyncService

from .api import (
    health_routes,
    index_routes,
    search_routes,
)


logger = logging.getLogger("search_sync.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app(
    cfg: Optional[Settings] = None,
    search_client: Optional[SearchEngineClient] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    cfg : Optional[Settings]
        Configuration. Defaults to the environment-loaded settings.

    search_client : Optional[SearchEngineClient]
        Pre-built client. When given, the caller owns its lifecycle.

    session_factory : Optional[async_sessionmaker[AsyncSession]]
        Pre-built session factory. When given, no engine is created.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    if cfg is None:
        from .config import settings as cfg

    logging.getLogger("search_sync").setLevel(cfg.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting search-sync against %s", cfg.elasticsearch_url)

        # Fail fast on a broken analyzer catalog
        catalog = load_catalog(cfg.elasticsearch_analysis)

        client = search_client or SearchEngineClient.from_settings(cfg)
        engine = None
        factory = session_factory
        if factory is None:
            engine = create_engine_from_settings(cfg)
            factory = create_session_factory(engine)

        app.state.settings = cfg
        app.state.search_client = client
        app.state.session_factory = factory
        app.state.sync_service = SearchSyncService(
            client,
            executor=SearchExecutor(client, default_size=cfg.default_search_size),
            catalog=catalog,
        )

        try:
            yield
        finally:
            logger.info("Shutting down search-sync")
            if search_client is None:
                await client.aclose()
            if engine is not None:
                await engine.dispose()

    app = FastAPI(
        title="search-sync",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(SearchSyncError, search_sync_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(search_routes.router)
    app.include_router(index_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
