"""Tests for the /api/v1/forms/ws live feed (Starlette TestClient)."""

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.api.v1.endpoints import websocket as feed
from app.infrastructure.firebase.repositories import FirestoreFormRepository
from app.main import app
from tests.fakes import TEST_USER_ID, FakeFirestore, RecordingActivityLog


def _put_form(store: FakeFirestore, form_id: str, category: str, minute: int) -> None:
    store.put("forms", form_id, {
        "title": f"Form {form_id}",
        "formNumber": form_id.upper(),
        "category": category,
        "lineOfBusiness": "Auto",
        "isActive": True,
        "isDeleted": False,
        "updatedAt": datetime(2025, 3, 1, 12, minute, tzinfo=UTC),
    })


@pytest.fixture
def feed_store(monkeypatch) -> FakeFirestore:
    store = FakeFirestore()
    app.state.form_repository = FirestoreFormRepository(
        store, RecordingActivityLog(), poll_interval_seconds=0.01
    )

    async def _user(websocket) -> str:
        return TEST_USER_ID

    monkeypatch.setattr(feed, "get_websocket_user_id", _user)
    yield store
    app.state.form_repository = None


def test_feed_sends_snapshot_then_changes(feed_store: FakeFirestore) -> None:
    _put_form(feed_store, "a1", "Policy", 0)
    _put_form(feed_store, "b2", "Claims", 1)

    with TestClient(app).websocket_connect("/api/v1/forms/ws?category=Policy") as ws:
        first = ws.receive_json()
        assert first["type"] == "forms"
        assert [item["id"] for item in first["items"]] == ["a1"]

        _put_form(feed_store, "c3", "Policy", 2)
        second = ws.receive_json()
        assert [item["id"] for item in second["items"]] == ["c3", "a1"]


def test_feed_rejects_invalid_filter(feed_store: FakeFirestore) -> None:
    with TestClient(app).websocket_connect("/api/v1/forms/ws?category=Brochure") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_feed_requires_authentication() -> None:
    with TestClient(app).websocket_connect("/api/v1/forms/ws") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 1008


def test_feed_closes_with_1011_when_store_fails(feed_store: FakeFirestore) -> None:
    _put_form(feed_store, "a1", "Policy", 0)

    with TestClient(app).websocket_connect("/api/v1/forms/ws") as ws:
        assert [item["id"] for item in ws.receive_json()["items"]] == ["a1"]

        feed_store.fail("stream")
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
    assert exc_info.value.code == 1011
    assert exc_info.value.reason
