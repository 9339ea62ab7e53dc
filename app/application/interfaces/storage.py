"""Storage service protocol (DIP). Implementations: LocalStorageService, FirebaseStorageService."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from app.application.dtos.upload import StoredObject


class IUploadSession(Protocol):
    """One in-flight chunked upload of a known total size."""

    storage_ref: str
    chunk_size: int

    async def write_chunk(self, data: bytes) -> None:
        """Append the next chunk. Chunks arrive in order."""
        ...

    async def finish(self) -> StoredObject:
        """Commit the object once every byte was written."""
        ...

    async def abort(self) -> None:
        """Discard the partial object. Safe to call more than once."""
        ...


class IStorageService(Protocol):
    """Protocol for blob storage backends (Firebase Storage, local filesystem)."""

    async def start_upload(
        self,
        storage_ref: str,
        *,
        content_type: str,
        total_size: int,
        metadata: dict[str, str] | None = None,
    ) -> IUploadSession:
        """Open a resumable upload session for storage_ref."""
        ...

    async def get_download_url(self, storage_ref: str) -> str:
        """Return a durable download URL for a committed object."""
        ...

    async def get_metadata(self, storage_ref: str) -> StoredObject:
        """Return stored size, content type and custom metadata."""
        ...
