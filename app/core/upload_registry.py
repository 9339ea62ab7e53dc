"""In-memory registry of in-flight uploads (progress, cancel, pause/resume).

Single place for upload state; no shared mutable dict on app.state.
Finished entries are kept for ``retention`` so clients can read the
terminal state, then pruned on the next registration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from app.application.dtos.upload import UploadProgress
from app.application.services.upload_transfer import TransferControl
from app.domain.exceptions import UploadNotFoundException, ValidationException
from app.shared.utils.datetime import utc_now
from app.shared.utils.sanitization import validate_identifier


@dataclass
class UploadEntry:
    """Status of one upload as seen by API clients."""

    upload_id: str
    user_id: str
    control: TransferControl
    created_at: datetime
    progress: UploadProgress | None = None
    form_id: str | None = None
    error: str | None = None
    finished_at: datetime | None = None

    @property
    def state(self) -> str:
        if self.progress is None:
            return "pending"
        return self.progress.state.value

    def to_dict(self) -> dict[str, Any]:
        progress = self.progress
        return {
            "upload_id": self.upload_id,
            "state": self.state,
            "form_id": self.form_id,
            "error": self.error,
            "bytes_transferred": progress.bytes_transferred if progress else 0,
            "total_bytes": progress.total_bytes if progress else 0,
            "percentage": progress.percentage if progress else 0.0,
            "created_at": self.created_at,
            "finished_at": self.finished_at,
        }


class UploadRegistry:
    """In-memory store for upload controls and their latest progress.

    An entry counts as finished only once complete() has run: a SUCCESS
    progress event arrives before the form document is linked to its file.
    """

    def __init__(self, retention: timedelta = timedelta(minutes=15)) -> None:
        self._uploads: dict[str, UploadEntry] = {}
        self._retention = retention

    def register(self, upload_id: str, user_id: str) -> UploadEntry:
        """Register a new upload; the id is chosen by the client."""
        try:
            validate_identifier(upload_id)
        except ValueError as e:
            raise ValidationException("Invalid upload_id", field="upload_id") from e
        self._prune()
        existing = self._uploads.get(upload_id)
        if existing is not None and existing.finished_at is None:
            raise ValidationException("upload_id is already in use", field="upload_id")
        entry = UploadEntry(
            upload_id=upload_id,
            user_id=user_id,
            control=TransferControl(),
            created_at=utc_now(),
        )
        self._uploads[upload_id] = entry
        return entry

    def get(self, upload_id: str, user_id: str | None = None) -> UploadEntry:
        """Return the entry; uploads of other users are reported as not found."""
        entry = self._uploads.get(upload_id)
        if entry is None or (user_id is not None and entry.user_id != user_id):
            raise UploadNotFoundException(upload_id)
        return entry

    def in_flight_count(self) -> int:
        return sum(1 for entry in self._uploads.values() if entry.finished_at is None)

    def record_progress(self, upload_id: str, progress: UploadProgress) -> None:
        entry = self._uploads.get(upload_id)
        if entry is None:
            return
        entry.progress = progress

    def complete(self, upload_id: str, form_id: str | None, error: str | None = None) -> None:
        """Attach the outcome once the pipeline returns or raises."""
        entry = self._uploads.get(upload_id)
        if entry is None:
            return
        entry.form_id = form_id
        entry.error = error
        if entry.finished_at is None:
            entry.finished_at = utc_now()

    def _prune(self) -> None:
        cutoff = utc_now() - self._retention
        expired = [
            upload_id
            for upload_id, entry in self._uploads.items()
            if entry.finished_at is not None and entry.finished_at < cutoff
        ]
        for upload_id in expired:
            del self._uploads[upload_id]
