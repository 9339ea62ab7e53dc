"""Form upload: validate the PDF, create the record, stream the file, link it back."""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from datetime import datetime

from app.application.dtos.form import FormCreate
from app.application.dtos.upload import FormFile, StoredObject, UploadProgress
from app.application.interfaces.repositories import IFormRepository
from app.application.interfaces.storage import IStorageService
from app.application.services.form_metadata_validator import validate_form_create
from app.application.services.upload_transfer import TransferControl, UploadTask
from app.domain.exceptions import ValidationException
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, add_span_event, traced
from app.shared.utils.datetime import to_timestamp_ms, utc_now
from app.shared.utils.sanitization import safe_file_stem

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
MAX_FILE_SIZE = 50 * 1024 * 1024
DEFAULT_EXTENSION = "pdf"
FORMS_STORAGE_PREFIX = "forms"

_VERSION_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def validate_form_file(file: FormFile, max_size: int = MAX_FILE_SIZE) -> None:
    """Raise ValidationException naming the first violated rule."""
    if (file.content_type or "").split(";")[0].strip().lower() != PDF_CONTENT_TYPE:
        raise ValidationException("Only PDF files are allowed", field="content_type")
    if file.size > max_size:
        raise ValidationException(
            f"File size must be less than {max_size // (1024 * 1024)}MB", field="size"
        )
    if not file.filename or not file.filename.strip():
        raise ValidationException("File must have a valid name", field="filename")
    if file.size <= 0:
        raise ValidationException("File must not be empty", field="size")


def generate_file_name(original_name: str, version: str, now: datetime) -> str:
    """``{base}_v{version}_{epoch_ms}.{ext}``; unique per upload instant."""
    name = os.path.basename(original_name.replace("\\", "/")).strip()
    base, dot, ext = name.rpartition(".")
    if not dot:
        base, ext = name, ""
    ext = safe_file_stem(ext) or DEFAULT_EXTENSION
    stem = safe_file_stem(base) or "file"
    safe_version = _VERSION_UNSAFE.sub("_", version)
    return f"{stem}_v{safe_version}_{to_timestamp_ms(now)}.{ext}"


def form_storage_ref(form_id: str, file_name: str) -> str:
    return f"{FORMS_STORAGE_PREFIX}/{form_id}/{file_name}"


class FormUploadService:
    """Single responsibility: one PDF upload from validation to linked record.

    No rollback: a failed or cancelled transfer leaves the created record
    without file_url/file_size.
    """

    def __init__(
        self,
        storage_service: IStorageService,
        form_repo: IFormRepository,
        *,
        max_file_size: int = MAX_FILE_SIZE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.storage = storage_service
        self.form_repo = form_repo
        self.max_file_size = max_file_size
        self._clock = clock

    @traced("forms.upload")
    async def upload_form(
        self,
        file: FormFile,
        metadata: FormCreate,
        user_id: str,
        *,
        on_progress: Callable[[UploadProgress], None] | None = None,
        control: TransferControl | None = None,
    ) -> str:
        """Create the form record and upload its file; returns the form id.

        Raises:
            ValidationException: Bad file or metadata (before any network call).
            PersistenceException: Record create or link failed.
            UploadCancelledException: control.cancel() was called mid-transfer.
            TransferException: Storage rejected or lost the transfer.
        """
        validate_form_file(file, self.max_file_size)
        metadata = validate_form_create(metadata)

        form_id = await self.form_repo.create_form(metadata, user_id)
        add_span_attributes(form_id=form_id)

        now = self._clock()
        file_name = generate_file_name(file.filename, metadata.version, now)
        storage_ref = form_storage_ref(form_id, file_name)
        task = UploadTask(
            self.storage,
            storage_ref,
            file.data,
            total_bytes=file.size,
            content_type=PDF_CONTENT_TYPE,
            metadata={
                "formId": form_id,
                "version": metadata.version,
                "originalName": file.filename,
                "uploadedAt": now.isoformat(),
            },
            control=control,
            on_progress=on_progress,
        )
        stored = await task.run()
        add_span_event("upload.stored", {"storage_ref": storage_ref, "size": stored.size})

        await self._link_file(form_id, stored, user_id)
        logger.info(
            "Form uploaded: id=%s ref=%s bytes=%d by=%s",
            form_id,
            storage_ref,
            stored.size,
            user_id,
        )
        return form_id

    async def _link_file(self, form_id: str, stored: StoredObject, user_id: str) -> None:
        download_url = await self.storage.get_download_url(stored.storage_ref)
        info = await self.storage.get_metadata(stored.storage_ref)
        await self.form_repo.update_form(
            form_id,
            {"file_url": download_url, "file_size": info.size},
            user_id,
        )
