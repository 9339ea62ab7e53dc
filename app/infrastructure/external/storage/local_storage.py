"""Local filesystem storage with path validation and atomic writes."""

from __future__ import annotations

import hashlib
import json
import os
import secrets
import tempfile
from pathlib import Path
from typing import Any, cast
from urllib.parse import quote

import aiofiles
import aiofiles.os

from app.application.dtos.upload import StoredObject
from app.infrastructure.exceptions import (
    StorageNotFoundError,
    StoragePermissionError,
    StorageRequestError,
    StorageUploadError,
)
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_download_token

_META_SUFFIX = ".meta.json"


class LocalUploadSession:
    """Chunks are appended to a temp file next to the target; finish() renames it."""

    def __init__(
        self,
        service: LocalStorageService,
        storage_ref: str,
        target_path: Path,
        *,
        content_type: str,
        total_size: int,
        metadata: dict[str, str],
        chunk_size: int,
    ) -> None:
        self.storage_ref = storage_ref
        self.chunk_size = chunk_size
        self._service = service
        self._target = target_path
        self._content_type = content_type
        self._total = total_size
        self._metadata = metadata
        self._sha256 = hashlib.sha256()
        self._written = 0
        fd, temp_path = tempfile.mkstemp(
            dir=target_path.parent, prefix=".tmp_", suffix=target_path.suffix
        )
        os.close(fd)
        self._temp = Path(temp_path)
        self._done = False

    async def write_chunk(self, data: bytes) -> None:
        if self._done:
            raise StorageUploadError(self.storage_ref, "session already closed")
        if self._written + len(data) > self._total:
            raise StorageUploadError(self.storage_ref, "more bytes than declared")
        try:
            async with aiofiles.open(self._temp, "ab") as f:
                await f.write(data)
        except OSError as e:
            raise StorageUploadError(self.storage_ref, str(e)) from e
        self._sha256.update(data)
        self._written += len(data)

    async def finish(self) -> StoredObject:
        if self._written != self._total:
            raise StorageUploadError(
                self.storage_ref, f"incomplete: {self._written} of {self._total} bytes"
            )
        token = generate_download_token()
        checksum = self._sha256.hexdigest()
        try:
            os.chmod(self._temp, 0o640)
            await aiofiles.os.rename(self._temp, self._target)
            await self._service._write_metadata(
                self._target,
                {
                    "storage_ref": self.storage_ref,
                    "checksum": checksum,
                    "size": self._written,
                    "content_type": self._content_type,
                    "uploaded_at": utc_now().isoformat(),
                    "download_token": token,
                    "custom": self._metadata,
                },
            )
        except OSError as e:
            raise StorageUploadError(self.storage_ref, str(e)) from e
        self._done = True
        return StoredObject(
            storage_ref=self.storage_ref,
            size=self._written,
            content_type=self._content_type,
            checksum=checksum,
            custom_metadata=dict(self._metadata),
        )

    async def abort(self) -> None:
        self._done = True
        if self._temp.exists():
            await aiofiles.os.remove(self._temp)


class LocalStorageService:
    """Local filesystem storage with atomic writes and path traversal protection.

    Paths are validated against storage_root. Uploads go to a temp file and
    are renamed into place on finish. Metadata (including a durable download
    token) is stored in a .meta.json sidecar.
    """

    def __init__(
        self,
        storage_root: str,
        base_url: str | None = None,
        *,
        chunk_size: int = 1024 * 1024,
    ) -> None:
        """Initialize local storage.

        Args:
            storage_root: Base directory for all files.
            base_url: Public base URL of this service (e.g. https://forms.example.com).
            chunk_size: Bytes per upload chunk.
        """
        self.storage_root = Path(storage_root).resolve()
        self.base_url = base_url.rstrip("/") if base_url else None
        self.chunk_size = chunk_size
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _get_full_path(self, storage_ref: str) -> Path:
        """Resolve and validate path under storage_root. Raises StoragePermissionError if traversal."""
        full_path = (self.storage_root / storage_ref).resolve()
        try:
            full_path.relative_to(self.storage_root)
        except ValueError as e:
            raise StoragePermissionError(storage_ref, "path_validation") from e
        if full_path == self.storage_root or full_path.name.endswith(_META_SUFFIX):
            raise StoragePermissionError(storage_ref, "path_validation")
        return full_path

    @staticmethod
    def _meta_path(file_path: Path) -> Path:
        return file_path.with_name(file_path.name + _META_SUFFIX)

    async def _write_metadata(self, file_path: Path, metadata: dict[str, Any]) -> None:
        """Write JSON sidecar."""
        meta_path = self._meta_path(file_path)
        async with aiofiles.open(meta_path, "w") as f:
            await f.write(json.dumps(metadata, indent=2))
        os.chmod(meta_path, 0o640)

    async def _read_metadata(self, file_path: Path) -> dict[str, Any]:
        """Read JSON sidecar or empty dict."""
        meta_path = self._meta_path(file_path)
        if not meta_path.exists():
            return {}
        async with aiofiles.open(meta_path, "r") as f:
            content = await f.read()
            result = json.loads(content)
            return cast(dict[str, Any], result) if isinstance(result, dict) else {}

    async def start_upload(
        self,
        storage_ref: str,
        *,
        content_type: str,
        total_size: int,
        metadata: dict[str, str] | None = None,
    ) -> LocalUploadSession:
        target_path = self._get_full_path(storage_ref)
        try:
            target_path.parent.mkdir(parents=True, exist_ok=True, mode=0o750)
            return LocalUploadSession(
                self,
                storage_ref,
                target_path,
                content_type=content_type,
                total_size=total_size,
                metadata=dict(metadata or {}),
                chunk_size=self.chunk_size,
            )
        except OSError as e:
            raise StorageUploadError(storage_ref, str(e)) from e

    async def get_metadata(self, storage_ref: str) -> StoredObject:
        file_path = self._get_full_path(storage_ref)
        if not file_path.is_file():
            raise StorageNotFoundError(storage_ref)
        stored = await self._read_metadata(file_path)
        return StoredObject(
            storage_ref=storage_ref,
            size=file_path.stat().st_size,
            content_type=stored.get("content_type", "application/octet-stream"),
            checksum=stored.get("checksum"),
            custom_metadata=stored.get("custom", {}),
        )

    async def get_download_url(self, storage_ref: str) -> str:
        """Durable URL served by the storage download route; carries the sidecar token."""
        file_path = self._get_full_path(storage_ref)
        if not file_path.is_file():
            raise StorageNotFoundError(storage_ref)
        stored = await self._read_metadata(file_path)
        token = stored.get("download_token")
        if not token:
            token = generate_download_token()
            stored["download_token"] = token
            try:
                await self._write_metadata(file_path, stored)
            except OSError as e:
                raise StorageRequestError(storage_ref, "download url", str(e)) from e
        path = f"/api/v1/storage/{quote(storage_ref)}?token={token}"
        return f"{self.base_url}{path}" if self.base_url else path

    async def resolve_download(self, storage_ref: str, token: str) -> Path | None:
        """Return the file path when token matches the object's download token."""
        try:
            file_path = self._get_full_path(storage_ref)
        except StoragePermissionError:
            return None
        if not file_path.is_file():
            return None
        stored = await self._read_metadata(file_path)
        expected = stored.get("download_token")
        if not expected or not secrets.compare_digest(expected, token):
            return None
        return file_path
