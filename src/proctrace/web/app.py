"""FastAPI application factory for the ProcTrace web API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from proctrace import __version__
from proctrace.config import ProcTraceConfig
from proctrace.process.base import ProcessLookup, SampleSource
from proctrace.process.psutil_ import PsutilLookup, PsutilSampleSource
from proctrace.session.broadcast import Broadcaster
from proctrace.session.registry import MonitorRegistry
from proctrace.storage.db import get_db
from proctrace.storage.store import SessionStore

logger = logging.getLogger(__name__)


def create_app(
    config: ProcTraceConfig | None = None,
    lookup: ProcessLookup | None = None,
    source: SampleSource | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    The database, store and registry are created when the app starts up
    and torn down (all monitors stopped, db closed) when it shuts down.
    """
    config = config or ProcTraceConfig.load()
    lookup = lookup or PsutilLookup()
    source = source or PsutilSampleSource()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        db = await get_db(config.db_path)
        store = SessionStore(db)
        broadcaster = Broadcaster(queue_size=config.subscriber_queue_size)
        registry = MonitorRegistry(
            store,
            broadcaster,
            lookup,
            source,
            poll_interval=config.poll_interval,
        )
        app.state.db = db
        app.state.store = store
        app.state.broadcaster = broadcaster
        app.state.registry = registry
        try:
            yield
        finally:
            await registry.stop_all()
            broadcaster.close()
            await db.close()
            logger.info("Web API shut down")

    app = FastAPI(
        title="ProcTrace",
        version=__version__,
        docs_url="/api/docs",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.lookup = lookup

    # Register API routers
    from proctrace.web.api.live import router as live_router
    from proctrace.web.api.monitors import router as monitors_router
    from proctrace.web.api.processes import router as processes_router
    from proctrace.web.api.sessions import router as sessions_router

    app.include_router(sessions_router, prefix="/api")
    app.include_router(processes_router, prefix="/api")
    app.include_router(monitors_router, prefix="/api")
    app.include_router(live_router, prefix="/api")

    return app
