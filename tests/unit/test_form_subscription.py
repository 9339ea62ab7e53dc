"""Tests for polling form subscriptions (iterator and callback forms)."""

import asyncio

import pytest

from app.application.dtos.form import FormFilter
from app.domain.exceptions import PersistenceException, ValidationException
from app.infrastructure.firebase.repositories import FormSubscription
from tests.fakes import FakeClock, FakeFirestore, make_form

USER = "user-1"


async def test_identical_snapshots_are_suppressed() -> None:
    snapshots = [[], [], [], ["changed"]]
    calls = 0

    async def fetch():
        nonlocal calls
        calls += 1
        return snapshots[min(calls, len(snapshots)) - 1]

    subscription = FormSubscription(fetch, poll_interval=0.001)
    assert await subscription.__anext__() == []
    assert await subscription.__anext__() == ["changed"]
    assert calls == 4
    await subscription.close()


async def test_close_ends_iteration() -> None:
    async def fetch():
        return []

    async with FormSubscription(fetch, poll_interval=10) as subscription:
        assert await subscription.__anext__() == []
        await subscription.close()
        with pytest.raises(StopAsyncIteration):
            await subscription.__anext__()
    assert subscription.closed


async def test_watch_delivers_initial_and_changed_sets(repo, clock: FakeClock) -> None:
    first_id = await repo.create_form(make_form(), USER)
    subscription = repo.watch_forms(FormFilter())
    try:
        initial = await subscription.__anext__()
        assert [r.id for r in initial] == [first_id]

        clock.advance(seconds=1)
        second_id = await repo.create_form(make_form(form_number="N-2"), USER)
        updated = await asyncio.wait_for(subscription.__anext__(), timeout=2)
        assert [r.id for r in updated] == [second_id, first_id]
    finally:
        await subscription.close()


async def test_watch_rejects_text_filter(repo) -> None:
    with pytest.raises(ValidationException):
        repo.watch_forms(FormFilter(query="auto"))


async def test_watch_store_error_propagates(repo, store: FakeFirestore) -> None:
    store.fail("stream")
    subscription = repo.watch_forms()
    with pytest.raises(PersistenceException):
        await subscription.__anext__()


async def test_subscribe_callback_and_unsubscribe(repo) -> None:
    await repo.create_form(make_form(), USER)
    received: list[int] = []
    delivered = asyncio.Event()

    async def on_update(records) -> None:
        received.append(len(records))
        delivered.set()

    unsubscribe = await repo.subscribe_to_forms(FormFilter(), on_update)
    await asyncio.wait_for(delivered.wait(), timeout=2)
    await unsubscribe()
    await unsubscribe()

    assert received == [1]


async def test_subscribe_callback_error_stops_delivery(repo) -> None:
    calls = 0

    def on_update(records) -> None:
        nonlocal calls
        calls += 1
        raise RuntimeError("consumer failed")

    unsubscribe = await repo.subscribe_to_forms(None, on_update)
    await asyncio.sleep(0.05)
    await unsubscribe()

    assert calls == 1
