"""Upload control API: status, pause, resume and cancel by client-chosen upload id."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.dependencies import get_current_user_id, get_upload_registry
from app.core.upload_registry import UploadRegistry
from app.schemas.form import UploadStatusResponse

router = APIRouter()


@router.get("/{upload_id}", response_model=UploadStatusResponse)
async def get_upload_status(
    upload_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UploadRegistry, Depends(get_upload_registry)],
):
    """Latest progress of an upload started by the caller."""
    entry = registry.get(upload_id, user_id)
    return UploadStatusResponse(**entry.to_dict())


@router.post("/{upload_id}/pause", response_model=UploadStatusResponse)
async def pause_upload(
    upload_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UploadRegistry, Depends(get_upload_registry)],
):
    """Hold the transfer before its next chunk. No-op once finished."""
    entry = registry.get(upload_id, user_id)
    entry.control.pause()
    return UploadStatusResponse(**entry.to_dict())


@router.post("/{upload_id}/resume", response_model=UploadStatusResponse)
async def resume_upload(
    upload_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UploadRegistry, Depends(get_upload_registry)],
):
    entry = registry.get(upload_id, user_id)
    entry.control.resume()
    return UploadStatusResponse(**entry.to_dict())


@router.delete("/{upload_id}", response_model=UploadStatusResponse)
async def cancel_upload(
    upload_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    registry: Annotated[UploadRegistry, Depends(get_upload_registry)],
):
    """Cancel the transfer; the uploading request then fails with UPLOAD_CANCELLED."""
    entry = registry.get(upload_id, user_id)
    entry.control.cancel()
    return UploadStatusResponse(**entry.to_dict())
