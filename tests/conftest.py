"""Pytest configuration and fixtures for the forms library.

Repository tests run against tests.fakes.FakeFirestore; API tests use
app.main:app over ASGI with dependency overrides (no lifespan, so no
Firebase credentials are needed).
"""

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.v1.dependencies import (
    get_current_user_id,
    get_form_repository,
    get_storage_service,
    get_upload_registry,
)
from app.core.limiter import limiter
from app.core.upload_registry import UploadRegistry
from app.infrastructure.external.storage.local_storage import LocalStorageService
from app.infrastructure.firebase.repositories import FirestoreFormRepository
from app.main import app
from app.shared.utils.background import BestEffortTasks
from tests.fakes import TEST_USER_ID, FakeClock, FakeFirestore, RecordingActivityLog


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def activity() -> RecordingActivityLog:
    return RecordingActivityLog()


@pytest.fixture
async def tasks() -> AsyncIterator[BestEffortTasks]:
    runner = BestEffortTasks()
    yield runner
    await runner.drain(timeout=1.0)


@pytest.fixture
def repo(
    store: FakeFirestore,
    activity: RecordingActivityLog,
    tasks: BestEffortTasks,
    clock: FakeClock,
) -> FirestoreFormRepository:
    return FirestoreFormRepository(
        store,
        activity,
        tasks=tasks,
        clock=clock,
        poll_interval_seconds=0.01,
    )


@pytest.fixture
def local_storage(tmp_path) -> LocalStorageService:
    return LocalStorageService(str(tmp_path / "storage"), chunk_size=256 * 1024)


@pytest.fixture
def registry() -> UploadRegistry:
    return UploadRegistry()


@pytest.fixture
async def client(
    repo: FirestoreFormRepository,
    local_storage: LocalStorageService,
    registry: UploadRegistry,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI), authenticated as TEST_USER_ID."""
    app.dependency_overrides[get_form_repository] = lambda: repo
    app.dependency_overrides[get_storage_service] = lambda: local_storage
    app.dependency_overrides[get_upload_registry] = lambda: registry
    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID
    limiter.reset()
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def anonymous_client() -> AsyncIterator[AsyncClient]:
    """Client with no dependency overrides (no auth, no repository)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
