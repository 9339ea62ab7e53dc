"""Live form listings over the REST transport (polling, no server push).

A FormSubscription yields the full matching set once on open and then
each time it differs from the previously delivered set.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable

from app.application.dtos.form import FormRecord
from app.application.interfaces.repositories import FormsCallback, Unsubscribe
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

FetchSnapshot = Callable[[], Awaitable[list[FormRecord]]]


class FormSubscription:
    """Async iterator of snapshots; close() ends iteration at the next await point.

    Store errors raised by fetch propagate out of ``__anext__``; the
    subscription does not retry.
    """

    def __init__(self, fetch: FetchSnapshot, poll_interval: float) -> None:
        self._fetch = fetch
        self._poll_interval = poll_interval
        self._closed = asyncio.Event()
        self._last: list[FormRecord] | None = None

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __aiter__(self) -> FormSubscription:
        return self

    async def __anext__(self) -> list[FormRecord]:
        while True:
            if self.closed:
                raise StopAsyncIteration
            if self._last is not None:
                try:
                    await asyncio.wait_for(self._closed.wait(), timeout=self._poll_interval)
                except TimeoutError:
                    pass
                if self.closed:
                    raise StopAsyncIteration
            records = await self._fetch()
            if self.closed:
                raise StopAsyncIteration
            if records == self._last:
                continue
            self._last = records
            return records

    async def close(self) -> None:
        self._closed.set()

    async def __aenter__(self) -> FormSubscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


async def _deliver(subscription: FormSubscription, on_update: FormsCallback) -> None:
    try:
        async for records in subscription:
            result = on_update(records)
            if inspect.isawaitable(result):
                await result
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Form subscription stopped after an error")
        await subscription.close()


def run_subscription(subscription: FormSubscription, on_update: FormsCallback) -> Unsubscribe:
    """Start delivering snapshots to on_update; return the unsubscribe coroutine function."""
    task = asyncio.create_task(_deliver(subscription, on_update), name="form-subscription")

    async def unsubscribe() -> None:
        await subscription.close()
        if task is asyncio.current_task():
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    return unsubscribe
