"""Infrastructure exceptions for blob storage operations.

Storage errors extend FormsException so presentation can map them
to HTTP responses consistently. Upload failures are TransferExceptions.
"""

from app.domain.exceptions import FormsException, TransferException


class StorageException(FormsException):
    """Base exception for storage operations other than transfers."""


class StorageNotFoundError(StorageException):
    """File or object not found in storage."""

    def __init__(self, storage_ref: str) -> None:
        super().__init__(
            f"File not found: {storage_ref}",
            "STORAGE_NOT_FOUND",
            {"storage_ref": storage_ref},
        )


class StorageUploadError(TransferException):
    """File upload failed (session start, chunk write or commit)."""

    def __init__(self, storage_ref: str, reason: str) -> None:
        super().__init__(
            f"Failed to upload file: {storage_ref}",
            storage_ref=storage_ref,
            reason=reason,
        )


class StorageRequestError(StorageException):
    """Metadata, URL or delete request to the storage backend failed."""

    def __init__(self, storage_ref: str, operation: str, reason: str) -> None:
        super().__init__(
            f"Storage {operation} failed for: {storage_ref}",
            "STORAGE_ERROR",
            {"storage_ref": storage_ref, "operation": operation, "reason": reason},
        )


class StoragePermissionError(StorageException):
    """Storage reference escapes the storage root or is otherwise not allowed."""

    def __init__(self, storage_ref: str, operation: str) -> None:
        super().__init__(
            f"Permission denied for {operation} on {storage_ref}",
            "STORAGE_PERMISSION_ERROR",
            {"storage_ref": storage_ref, "operation": operation},
        )
