"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of infrastructure (Firestore client,
storage backend, repository, upload registry, telemetry).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.core.config import get_settings
from app.core.upload_registry import UploadRegistry
from app.infrastructure.external.storage import StorageFactory
from app.infrastructure.firebase import close_firebase, init_firebase
from app.infrastructure.firebase.repositories import (
    FirestoreActivityLog,
    FirestoreFormRepository,
)
from app.shared.utils.background import BestEffortTasks

logger = logging.getLogger(__name__)

# Seconds to wait for best-effort counter/activity writes on shutdown.
SHUTDOWN_DRAIN_TIMEOUT = 5.0


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: Firestore client, forms repository, storage backend,
    upload registry, telemetry (if enabled). Shutdown order: drain
    best-effort writes, close storage, close Firestore, telemetry shutdown.
    """
    settings = get_settings()

    # ---- Startup ----
    tasks = BestEffortTasks()
    app.state.best_effort_tasks = tasks
    app.state.upload_registry = UploadRegistry()
    app.state.firebase_project_id = None
    app.state.form_repository = None

    client = init_firebase()
    if client is not None:
        app.state.firebase_project_id = client.project_id
        app.state.form_repository = FirestoreFormRepository(
            client,
            FirestoreActivityLog(client),
            tasks=tasks,
            max_page_size=settings.forms_max_page_size,
            realtime_limit=settings.realtime_limit,
            poll_interval_seconds=settings.realtime_poll_interval_seconds,
            recent_upload_days=settings.recent_upload_days,
        )
    else:
        logger.warning("Firestore not configured; form routes will answer 503")

    app.state.storage_service = StorageFactory.create_storage_service(settings)
    logger.info("Storage backend: %s", settings.storage_backend)

    app.state.telemetry = None
    if settings.telemetry_enabled:
        from app.shared.telemetry.telemetry import ServiceTelemetry

        telemetry = ServiceTelemetry.from_settings(settings)
        telemetry.start(app)
        app.state.telemetry = telemetry

    yield

    # ---- Shutdown ----
    await tasks.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)

    storage = getattr(app.state, "storage_service", None)
    aclose = getattr(storage, "aclose", None)
    if aclose is not None:
        await aclose()
        logger.info("Storage HTTP client closed")

    await close_firebase()

    if app.state.telemetry is not None:
        app.state.telemetry.shutdown()
        logger.info("Telemetry shutdown complete")
