"""Firebase Storage (Google Cloud Storage JSON API) with resumable uploads.

Uploads use the GCS resumable protocol over httpx: one POST opens a
session, each chunk is a PUT with Content-Range, 308 means "continue".
Download URLs are Firebase token URLs (the token is stored in the
object's firebaseStorageDownloadTokens metadata), so they do not expire.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx

from app.application.dtos.upload import StoredObject
from app.infrastructure.exceptions import (
    StorageNotFoundError,
    StorageRequestError,
    StorageUploadError,
)
from app.infrastructure.firebase._rest_client import _get_access_token, _get_credentials
from app.shared.utils.generators import generate_download_token

logger = logging.getLogger(__name__)

STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.read_write"
_API_BASE = "https://storage.googleapis.com/storage/v1"
_UPLOAD_BASE = "https://storage.googleapis.com/upload/storage/v1"
_DOWNLOAD_BASE = "https://firebasestorage.googleapis.com/v0"
_TOKEN_KEY = "firebaseStorageDownloadTokens"
# Resumable upload chunks (except the last) must be multiples of this.
CHUNK_ALIGNMENT = 256 * 1024


def _stored_object(storage_ref: str, resource: dict[str, Any]) -> StoredObject:
    custom = dict(resource.get("metadata") or {})
    custom.pop(_TOKEN_KEY, None)
    return StoredObject(
        storage_ref=storage_ref,
        size=int(resource.get("size", 0)),
        content_type=resource.get("contentType", "application/octet-stream"),
        checksum=resource.get("md5Hash"),
        custom_metadata=custom,
    )


class FirebaseUploadSession:
    """One resumable upload session. Bytes are buffered up to an aligned chunk."""

    def __init__(
        self,
        service: FirebaseStorageService,
        storage_ref: str,
        session_uri: str,
        *,
        total_size: int,
        chunk_size: int,
    ) -> None:
        self.storage_ref = storage_ref
        self.chunk_size = chunk_size
        self._service = service
        self._session_uri = session_uri
        self._total = total_size
        self._offset = 0
        self._buffer = bytearray()
        self._resource: dict[str, Any] | None = None
        self._aborted = False

    async def _put(self, data: bytes) -> None:
        end = self._offset + len(data) - 1
        content_range = (
            f"bytes {self._offset}-{end}/{self._total}" if data else f"bytes */{self._total}"
        )
        try:
            resp = await self._service._http.put(
                self._session_uri,
                content=data,
                headers={"Content-Range": content_range},
            )
        except httpx.HTTPError as e:
            raise StorageUploadError(self.storage_ref, str(e)) from e
        if resp.status_code == 308:
            persisted = 0
            received = resp.headers.get("Range")
            if received:
                persisted = int(received.rsplit("-", 1)[1]) + 1
            if persisted != self._offset + len(data):
                raise StorageUploadError(
                    self.storage_ref,
                    f"server persisted {persisted} bytes, sent {self._offset + len(data)}",
                )
        elif resp.status_code in (200, 201):
            self._resource = resp.json()
        else:
            raise StorageUploadError(
                self.storage_ref, f"chunk rejected with HTTP {resp.status_code}"
            )
        self._offset += len(data)

    async def write_chunk(self, data: bytes) -> None:
        if self._aborted or self._resource is not None:
            raise StorageUploadError(self.storage_ref, "session already closed")
        if self._offset + len(self._buffer) + len(data) > self._total:
            raise StorageUploadError(self.storage_ref, "more bytes than declared")
        self._buffer += data
        while len(self._buffer) >= self.chunk_size:
            remaining = self._total - self._offset
            if len(self._buffer) == remaining:
                break
            chunk = bytes(self._buffer[: self.chunk_size])
            del self._buffer[: self.chunk_size]
            await self._put(chunk)
        if self._offset + len(self._buffer) == self._total:
            chunk = bytes(self._buffer)
            self._buffer.clear()
            await self._put(chunk)

    async def finish(self) -> StoredObject:
        if self._resource is None:
            raise StorageUploadError(
                self.storage_ref, f"incomplete: {self._offset} of {self._total} bytes"
            )
        return _stored_object(self.storage_ref, self._resource)

    async def abort(self) -> None:
        """Cancel the session (DELETE on the session URI; GCS answers 499)."""
        if self._aborted or self._resource is not None:
            return
        self._aborted = True
        try:
            await self._service._http.delete(self._session_uri)
        except httpx.HTTPError as e:
            logger.warning("Failed to cancel upload session for %s: %s", self.storage_ref, e)


class FirebaseStorageService:
    """Firebase Storage bucket accessed through the GCS JSON API."""

    def __init__(
        self,
        bucket: str,
        credentials,
        *,
        chunk_size: int = 1024 * 1024,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if chunk_size <= 0 or chunk_size % CHUNK_ALIGNMENT:
            raise ValueError(f"chunk_size must be a positive multiple of {CHUNK_ALIGNMENT}")
        self.bucket = bucket
        self.chunk_size = chunk_size
        self._credentials = credentials
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=60.0)
        self._owns_http = http_client is None

    @classmethod
    def from_service_account(
        cls, key_dict: dict, bucket: str, *, chunk_size: int = 1024 * 1024
    ) -> FirebaseStorageService:
        return cls(bucket, _get_credentials(key_dict, [STORAGE_SCOPE]), chunk_size=chunk_size)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _auth_headers(self) -> dict[str, str]:
        token = await asyncio.to_thread(_get_access_token, self._credentials)
        return {"Authorization": f"Bearer {token}"}

    def _object_url(self, storage_ref: str) -> str:
        return f"{_API_BASE}/b/{self.bucket}/o/{quote(storage_ref, safe='')}"

    async def start_upload(
        self,
        storage_ref: str,
        *,
        content_type: str,
        total_size: int,
        metadata: dict[str, str] | None = None,
    ) -> FirebaseUploadSession:
        custom = dict(metadata or {})
        custom[_TOKEN_KEY] = generate_download_token()
        headers = await self._auth_headers()
        headers.update({
            "X-Upload-Content-Type": content_type,
            "X-Upload-Content-Length": str(total_size),
        })
        url = (
            f"{_UPLOAD_BASE}/b/{self.bucket}/o"
            f"?uploadType=resumable&name={quote(storage_ref, safe='')}"
        )
        try:
            resp = await self._http.post(
                url,
                headers=headers,
                json={"name": storage_ref, "contentType": content_type, "metadata": custom},
            )
        except httpx.HTTPError as e:
            raise StorageUploadError(storage_ref, str(e)) from e
        session_uri = resp.headers.get("Location")
        if resp.status_code != 200 or not session_uri:
            raise StorageUploadError(
                storage_ref, f"could not open upload session (HTTP {resp.status_code})"
            )
        return FirebaseUploadSession(
            self,
            storage_ref,
            session_uri,
            total_size=total_size,
            chunk_size=self.chunk_size,
        )

    async def _get_resource(self, storage_ref: str) -> dict[str, Any] | None:
        try:
            resp = await self._http.get(
                self._object_url(storage_ref), headers=await self._auth_headers()
            )
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageRequestError(storage_ref, "metadata", str(e)) from e
        return resp.json()

    async def get_metadata(self, storage_ref: str) -> StoredObject:
        resource = await self._get_resource(storage_ref)
        if resource is None:
            raise StorageNotFoundError(storage_ref)
        return _stored_object(storage_ref, resource)

    async def get_download_url(self, storage_ref: str) -> str:
        """Token URL; objects uploaded elsewhere get a token added on first request."""
        resource = await self._get_resource(storage_ref)
        if resource is None:
            raise StorageNotFoundError(storage_ref)
        tokens = (resource.get("metadata") or {}).get(_TOKEN_KEY, "")
        token = tokens.split(",")[0] if tokens else ""
        if not token:
            token = generate_download_token()
            try:
                resp = await self._http.patch(
                    self._object_url(storage_ref),
                    headers=await self._auth_headers(),
                    json={"metadata": {_TOKEN_KEY: token}},
                )
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise StorageRequestError(storage_ref, "download url", str(e)) from e
        return (
            f"{_DOWNLOAD_BASE}/b/{self.bucket}/o/{quote(storage_ref, safe='')}"
            f"?alt=media&token={token}"
        )
