"""Application services: keyword extraction, metadata validation, upload transfer."""

from app.application.services.form_metadata_validator import (
    validate_changes,
    validate_form_create,
)
from app.application.services.keyword_extractor import (
    extract_keywords,
    keywords_for,
    tokenize_query,
)
from app.application.services.upload_transfer import TransferControl, UploadTask

__all__ = [
    "TransferControl",
    "UploadTask",
    "extract_keywords",
    "keywords_for",
    "tokenize_query",
    "validate_changes",
    "validate_form_create",
]
