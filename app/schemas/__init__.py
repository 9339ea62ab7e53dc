"""Pydantic request/response schemas for the API."""

from app.schemas.form import (
    FormDownloadResponse,
    FormListResponse,
    FormResponse,
    FormStatsResponse,
    FormUpdateRequest,
    FormUploadResponse,
    UploadStatusResponse,
)
from app.schemas.health import HealthResponse, ReadinessErrorResponse, ReadinessResponse

__all__ = [
    "FormDownloadResponse",
    "FormListResponse",
    "FormResponse",
    "FormStatsResponse",
    "FormUpdateRequest",
    "FormUploadResponse",
    "HealthResponse",
    "ReadinessErrorResponse",
    "ReadinessResponse",
    "UploadStatusResponse",
]
