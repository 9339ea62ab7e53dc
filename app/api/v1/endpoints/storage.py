"""Download route for files held by the local storage backend.

Download URLs carry the object's durable token; no user auth is needed,
matching Firebase Storage token URLs.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from app.api.v1.dependencies import get_storage_service
from app.application.interfaces.storage import IStorageService
from app.infrastructure.exceptions import StorageNotFoundError

router = APIRouter()


@router.get("/{storage_ref:path}")
async def download_file(
    storage_ref: str,
    storage: Annotated[IStorageService, Depends(get_storage_service)],
    token: str = Query(..., min_length=1),
) -> FileResponse:
    """Serve a stored file when token matches. 404 for any mismatch."""
    resolve = getattr(storage, "resolve_download", None)
    path = await resolve(storage_ref, token) if resolve is not None else None
    if path is None:
        raise StorageNotFoundError(storage_ref)
    info = await storage.get_metadata(storage_ref)
    return FileResponse(path, media_type=info.content_type, filename=path.name)
