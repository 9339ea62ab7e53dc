"""Application DTOs (read/write models) shared by use cases and repositories."""

from app.application.dtos.form import (
    FormCreate,
    FormFilter,
    FormPage,
    FormRecord,
    FormStats,
)
from app.application.dtos.upload import FormFile, StoredObject, UploadProgress

__all__ = [
    "FormCreate",
    "FormFile",
    "FormFilter",
    "FormPage",
    "FormRecord",
    "FormStats",
    "StoredObject",
    "UploadProgress",
]
