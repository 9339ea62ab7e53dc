"""StorageFactory picks the backend from settings."""

import pytest

from app.core.config import Settings
from app.infrastructure.external.storage import StorageFactory
from app.infrastructure.external.storage.local_storage import LocalStorageService


def test_local_backend_uses_root_and_chunk_size(tmp_path) -> None:
    settings = Settings(
        _env_file=None,
        storage_backend="local",
        storage_root=str(tmp_path),
        upload_chunk_size=512 * 1024,
    )

    service = StorageFactory.create_storage_service(settings)

    assert isinstance(service, LocalStorageService)
    assert service.chunk_size == 512 * 1024


def test_unknown_backend_is_rejected() -> None:
    settings = Settings.model_construct(storage_backend="s3")

    with pytest.raises(ValueError, match="Unknown storage backend"):
        StorageFactory.create_storage_service(settings)


def test_settings_reject_misaligned_chunk_size() -> None:
    with pytest.raises(ValueError, match="multiple of"):
        Settings(_env_file=None, upload_chunk_size=1000)
