"""Chunked transfer driver: progress events, pause/resume and cancellation.

UploadTask pushes a binary stream through a backend upload session one
chunk at a time. Every chunk produces a RUNNING event; pauses produce
PAUSED then RUNNING; the transfer ends with exactly one of SUCCESS,
CANCELED or ERROR and nothing is emitted after it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import BinaryIO

from app.application.dtos.upload import StoredObject, UploadProgress
from app.application.interfaces.storage import IStorageService, IUploadSession
from app.domain.enums import UploadState
from app.domain.exceptions import (
    FormsException,
    TransferException,
    UploadCancelledException,
)
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[UploadProgress], None]


class TransferControl:
    """Caller-held handle for one transfer: cancel, pause, resume.

    Methods are plain (non-async) so they can be called from a progress
    callback or from another task. cancel() wins over pause().
    """

    def __init__(self) -> None:
        self._cancelled = asyncio.Event()
        self._running = asyncio.Event()
        self._running.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def paused(self) -> bool:
        return not self._running.is_set() and not self.cancelled

    def cancel(self) -> None:
        self._cancelled.set()
        self._running.set()

    def pause(self) -> None:
        if not self.cancelled:
            self._running.clear()

    def resume(self) -> None:
        self._running.set()

    async def wait_resumed(self) -> None:
        await self._running.wait()

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    def checkpoint(self, storage_ref: str | None = None) -> None:
        """Raise UploadCancelledException if cancel() was called."""
        if self.cancelled:
            raise UploadCancelledException(storage_ref)


class UploadTask:
    """One transfer of ``total_bytes`` from ``stream`` to ``storage_ref``."""

    def __init__(
        self,
        storage: IStorageService,
        storage_ref: str,
        stream: BinaryIO,
        *,
        total_bytes: int,
        content_type: str,
        metadata: dict[str, str] | None = None,
        control: TransferControl | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._storage = storage
        self._ref = storage_ref
        self._stream = stream
        self._total = total_bytes
        self._content_type = content_type
        self._metadata = metadata or {}
        self._control = control or TransferControl()
        self._on_progress = on_progress
        self._transferred = 0
        self._state: UploadState | None = None

    @property
    def state(self) -> UploadState | None:
        return self._state

    @property
    def bytes_transferred(self) -> int:
        return self._transferred

    def _emit(self, state: UploadState) -> None:
        if self._state is not None and self._state.is_terminal:
            return
        self._state = state
        if self._on_progress is None:
            return
        event = UploadProgress(self._transferred, self._total, state)
        try:
            self._on_progress(event)
        except Exception:
            logger.warning("Progress callback failed for %s", self._ref, exc_info=True)

    async def _read(self, size: int) -> bytes:
        try:
            return await asyncio.to_thread(self._stream.read, size)
        except OSError as e:
            raise TransferException(
                "Failed to read upload stream", storage_ref=self._ref, reason=str(e)
            ) from e

    async def _write(self, session: IUploadSession, chunk: bytes) -> None:
        """Write one chunk; a cancel() during the write interrupts it."""
        write = asyncio.ensure_future(session.write_chunk(chunk))
        cancelled = asyncio.ensure_future(self._control.wait_cancelled())
        try:
            await asyncio.wait({write, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
        if not write.done():
            write.cancel()
            try:
                await write
            except asyncio.CancelledError:
                pass
            self._control.checkpoint(self._ref)
        write.result()

    async def _wait_if_paused(self) -> None:
        if not self._control.paused:
            return
        self._emit(UploadState.PAUSED)
        await self._control.wait_resumed()
        self._control.checkpoint(self._ref)
        self._emit(UploadState.RUNNING)

    async def _abort(self, session: IUploadSession | None) -> None:
        if session is None:
            return
        try:
            await session.abort()
        except Exception:
            logger.warning("Failed to abort upload session for %s", self._ref, exc_info=True)

    async def run(self) -> StoredObject:
        """Transfer the whole stream; returns the committed object.

        Raises:
            UploadCancelledException: cancel() was called before commit.
            TransferException: the backend or the stream failed.
        """
        session: IUploadSession | None = None
        try:
            self._control.checkpoint(self._ref)
            session = await self._storage.start_upload(
                self._ref,
                content_type=self._content_type,
                total_size=self._total,
                metadata=self._metadata,
            )
            while self._transferred < self._total:
                await self._wait_if_paused()
                self._control.checkpoint(self._ref)
                size = min(session.chunk_size, self._total - self._transferred)
                chunk = await self._read(size)
                if not chunk:
                    raise TransferException(
                        f"Upload stream ended after {self._transferred} of {self._total} bytes",
                        storage_ref=self._ref,
                    )
                await self._write(session, chunk)
                self._transferred += len(chunk)
                self._emit(UploadState.RUNNING)
            if await self._read(1):
                raise TransferException(
                    f"Upload stream is longer than the declared {self._total} bytes",
                    storage_ref=self._ref,
                )
            await self._wait_if_paused()
            self._control.checkpoint(self._ref)
            stored = await session.finish()
            if stored.size != self._total:
                raise TransferException(
                    f"Stored {stored.size} bytes, expected {self._total}",
                    storage_ref=self._ref,
                )
        except UploadCancelledException:
            await self._abort(session)
            self._emit(UploadState.CANCELED)
            logger.info("Upload cancelled: %s after %d bytes", self._ref, self._transferred)
            raise
        except asyncio.CancelledError:
            await self._abort(session)
            self._emit(UploadState.CANCELED)
            raise
        except FormsException:
            await self._abort(session)
            self._emit(UploadState.ERROR)
            raise
        except Exception as e:
            await self._abort(session)
            self._emit(UploadState.ERROR)
            raise TransferException(
                "Upload failed", storage_ref=self._ref, reason=str(e)
            ) from e
        self._emit(UploadState.SUCCESS)
        return stored
