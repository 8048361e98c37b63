"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from planlink.api.routes import enrollments, health, uploads
from planlink.core.config import AppSettings
from planlink.core.protocols import IFileStore, IRecordStore
from planlink.persistence import create_persistence

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    settings: AppSettings = app.state.settings
    logging.basicConfig(level=settings.log_level)
    if app.state.store is None:
        store, cache, file_store = create_persistence(settings)
        app.state.store = store
        app.state.cache = cache
        app.state.file_store = file_store
    logger.info(
        "PlanLink started (%s, %s store)", settings.environment, type(app.state.store).__name__,
    )
    yield


def create_app(
    settings: AppSettings | None = None,
    store: IRecordStore | None = None,
    file_store: IFileStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``store`` and ``file_store`` override the backends chosen by settings.
    """
    app = FastAPI(
        title="PlanLink Enrollment Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or AppSettings()
    app.state.store = store
    app.state.cache = None
    app.state.file_store = file_store
    app.include_router(health.router)
    app.include_router(uploads.router)
    app.include_router(enrollments.router)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
