from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eventease.core.config import Settings, get_settings
from eventease.core.logging_config import setup_logging
from eventease.domain.errors import EventStoreError
from eventease.repositories.json_storage import JsonEventStorage
from eventease.routers import events as events_router
from eventease.services.backup_service import BackupService, PeriodicBackup
from eventease.services.event_store import EventStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: EventStore = app.state.event_store
    # A corrupt data file aborts startup instead of being reseeded.
    store.init()
    scheduler: PeriodicBackup | None = app.state.backup_scheduler
    if scheduler:
        scheduler.start()
    logger.info("EventEase server ready with persistent storage!")
    try:
        yield
    finally:
        logger.info("Shutting down gracefully...")
        if scheduler:
            scheduler.stop()
        try:
            store.close()
        except EventStoreError as exc:
            logger.error("Error saving data during shutdown: %s", exc)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory compatible with uvicorn (``uvicorn eventease.app:create_app --factory``)."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title="EventEase API", lifespan=lifespan)

    storage = JsonEventStorage(settings.data_file)
    app.state.settings = settings
    app.state.event_store = EventStore(
        storage,
        capacity_policy=settings.capacity_policy,
        autoflush=settings.autoflush,
    )
    backup_service = BackupService(storage, settings.backup_dir, retention=settings.backup_retention)
    app.state.backup_service = backup_service
    app.state.backup_scheduler = (
        PeriodicBackup(backup_service, settings.backup_interval_seconds)
        if settings.backup_interval_seconds > 0
        else None
    )

    allowed_cors = set(settings.cors_origins)
    if settings.app_env != "prod":
        allowed_cors.update(
            {
                "http://localhost:3000",
                "http://127.0.0.1:3000",
                "http://localhost:8000",
                "http://127.0.0.1:8000",
            }
        )
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )

    app.add_exception_handler(EventStoreError, events_router.handle_store_error)
    app.include_router(events_router.router)
    return app
