"""Forms, storage and upload dependencies (composition root).

The repository, storage backend and upload registry are built once in
app.core.lifespan and read from app.state here; routes never touch infra.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from app.application.interfaces.repositories import IFormRepository
from app.application.interfaces.storage import IStorageService
from app.application.use_cases.forms import FormUploadService
from app.core.config import get_settings
from app.core.upload_registry import UploadRegistry
from app.domain.exceptions import PersistenceException


def get_form_repository(connection: HTTPConnection) -> IFormRepository:
    """Forms repository; 503 when Firestore is not configured."""
    repository = getattr(connection.app.state, "form_repository", None)
    if repository is None:
        raise PersistenceException("reach the forms store", "Firestore is not configured")
    return repository


def get_storage_service(connection: HTTPConnection) -> IStorageService:
    return connection.app.state.storage_service


def get_upload_registry(connection: HTTPConnection) -> UploadRegistry:
    return connection.app.state.upload_registry


def get_form_upload_service(
    repository: Annotated[IFormRepository, Depends(get_form_repository)],
    storage: Annotated[IStorageService, Depends(get_storage_service)],
) -> FormUploadService:
    """Build FormUploadService for one request (storage + forms repo)."""
    return FormUploadService(
        storage_service=storage,
        form_repo=repository,
        max_file_size=get_settings().max_upload_size,
    )
