from __future__ import annotations
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.web import router as web_router
from datastore.bucket_store import BucketStore
from datastore.schema import open_readings_store
from logging_config import configure_logging
from services.readings import ReadingsService
from settings import Settings, get_settings


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[BucketStore] = None,
) -> FastAPI:
    """Build the application around one configuration value.

    The store is opened from ``settings.database_file`` when the application
    starts unless an already opened ``store`` is handed in, and it is closed
    on shutdown either way.
    """
    app_settings = settings if settings is not None else get_settings()
    configure_logging(app_settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        readings_store = store if store is not None else open_readings_store(app_settings.database_file)
        app.state.store = readings_store
        app.state.readings_service = ReadingsService(readings_store)
        try:
            yield
        finally:
            readings_store.close()

    app = FastAPI(
        title="wort",
        description="HTTP API server for temperature sensor readings.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    static_dir = Path(__file__).resolve().parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.include_router(router)
    app.include_router(web_router)
    return app

app = create_app()
