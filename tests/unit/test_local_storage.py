"""Tests for LocalStorageService (chunked sessions, sidecar metadata, download tokens)."""

import pytest

from app.infrastructure.exceptions import (
    StorageNotFoundError,
    StoragePermissionError,
    StorageUploadError,
)
from app.infrastructure.external.storage.local_storage import LocalStorageService

REF = "forms/f1/app_v1_1700000000000.pdf"


@pytest.fixture
def storage(tmp_path) -> LocalStorageService:
    return LocalStorageService(str(tmp_path / "root"), chunk_size=4)


async def _put(storage: LocalStorageService, ref: str, data: bytes) -> None:
    session = await storage.start_upload(
        ref, content_type="application/pdf", total_size=len(data), metadata={"formId": "f1"}
    )
    for i in range(0, len(data), session.chunk_size):
        await session.write_chunk(data[i : i + session.chunk_size])
    await session.finish()


async def test_upload_then_metadata(storage) -> None:
    await _put(storage, REF, b"%PDF-1.7 body")

    info = await storage.get_metadata(REF)

    assert info.size == 13
    assert info.content_type == "application/pdf"
    assert info.custom_metadata == {"formId": "f1"}
    assert info.checksum is not None


async def test_download_url_token_resolves_file(storage) -> None:
    await _put(storage, REF, b"%PDF")

    url = await storage.get_download_url(REF)
    assert url.startswith(f"/api/v1/storage/{REF}?token=")
    token = url.split("token=", 1)[1]

    assert await storage.get_download_url(REF) == url
    path = await storage.resolve_download(REF, token)
    assert path is not None and path.read_bytes() == b"%PDF"
    assert await storage.resolve_download(REF, "wrong") is None
    assert await storage.resolve_download("../etc/passwd", token) is None


async def test_download_url_uses_base_url(tmp_path) -> None:
    storage = LocalStorageService(str(tmp_path), base_url="https://forms.example.com/")
    await _put(storage, REF, b"%PDF")
    url = await storage.get_download_url(REF)
    assert url.startswith("https://forms.example.com/api/v1/storage/forms/f1/")


async def test_missing_object(storage) -> None:
    with pytest.raises(StorageNotFoundError):
        await storage.get_metadata(REF)
    with pytest.raises(StorageNotFoundError):
        await storage.get_download_url(REF)
    assert not (storage.storage_root / REF).is_file()


@pytest.mark.parametrize("ref", ["../outside.pdf", "forms/../../x.pdf", "a.pdf.meta.json"])
async def test_rejects_refs_outside_root(storage, ref) -> None:
    with pytest.raises(StoragePermissionError):
        await storage.start_upload(ref, content_type="application/pdf", total_size=1)


async def test_finish_requires_every_byte(storage) -> None:
    session = await storage.start_upload(REF, content_type="application/pdf", total_size=8)
    await session.write_chunk(b"1234")
    with pytest.raises(StorageUploadError):
        await session.finish()
    with pytest.raises(StorageUploadError):
        await session.write_chunk(b"123456")
    await session.abort()
    assert not (storage.storage_root / REF).is_file()

