"""Chooses the PDF blob store named by STORAGE_BACKEND."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.application.interfaces.storage import IStorageService

if TYPE_CHECKING:
    from app.core.config import Settings


class StorageFactory:
    """Builds the configured IStorageService; backends are imported on demand."""

    @staticmethod
    def create_storage_service(settings: Settings | None = None) -> IStorageService:
        """Return LocalStorageService or FirebaseStorageService.

        Both use settings.upload_chunk_size, so progress events arrive at the
        same granularity whichever backend is active.

        Raises:
            ValueError: Unknown backend, or the firebase backend without a
                bucket or service account.
        """
        from app.core.config import get_settings

        settings = settings or get_settings()
        backend = settings.storage_backend.lower()
        if backend == "local":
            from app.infrastructure.external.storage.local_storage import (
                LocalStorageService,
            )

            return LocalStorageService(
                storage_root=settings.storage_root,
                base_url=settings.storage_base_url,
                chunk_size=settings.upload_chunk_size,
            )
        if backend != "firebase":
            raise ValueError(f"Unknown storage backend {backend!r} (use 'local' or 'firebase')")

        from app.infrastructure.external.storage.firebase_storage import (
            FirebaseStorageService,
        )
        from app.infrastructure.firebase.client import load_service_account_info

        key_dict = load_service_account_info()
        if not settings.firebase_storage_bucket or not key_dict:
            raise ValueError(
                "The firebase storage backend needs FIREBASE_STORAGE_BUCKET and a service account"
            )
        return FirebaseStorageService.from_service_account(
            key_dict,
            settings.firebase_storage_bucket,
            chunk_size=settings.upload_chunk_size,
        )
