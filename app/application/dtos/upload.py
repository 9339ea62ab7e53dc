"""DTOs for the upload pipeline: input file, progress events, stored object."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, BinaryIO

from app.domain.enums import UploadState


@dataclass(frozen=True)
class FormFile:
    """File submitted for upload. size is the declared byte count."""

    filename: str
    content_type: str
    size: int
    data: BinaryIO


@dataclass(frozen=True)
class UploadProgress:
    """Progress of one transfer. Transient: never persisted."""

    bytes_transferred: int
    total_bytes: int
    state: UploadState

    @property
    def percentage(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.bytes_transferred / self.total_bytes * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "bytes_transferred": self.bytes_transferred,
            "total_bytes": self.total_bytes,
            "percentage": self.percentage,
            "state": self.state.value,
        }


@dataclass(frozen=True)
class StoredObject:
    """Result of a completed transfer as reported by the storage backend."""

    storage_ref: str
    size: int
    content_type: str
    checksum: str | None = None
    custom_metadata: dict[str, str] = field(default_factory=dict)
