"""Domain exceptions for the forms library.

Defines domain-level exceptions for validation, persistence, transfer and
lookup failures. These exceptions are independent of infrastructure concerns.
Presentation layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class FormsException(Exception):
    """Base exception for all forms library errors.

    All custom exceptions inherit from this class so callers can surface a
    human-readable message consistently. Presentation layer maps these to
    HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, form_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API error responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(FormsException):
    """Raised when input validation fails (bad file, metadata, filter or cursor).

    Always raised before any network call is attempted.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class PersistenceException(FormsException):
    """Raised when a document store read or write fails."""

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize with the failed operation and the underlying reason.

        Args:
            operation: Short description (e.g. 'create form', 'list forms').
            reason: Underlying error text from the store client.
        """
        super().__init__(
            f"Failed to {operation}",
            "PERSISTENCE_ERROR",
            {"operation": operation, "reason": reason},
        )


class TransferException(FormsException):
    """Raised when a file transfer to blob storage fails mid-stream."""

    def __init__(
        self,
        message: str,
        storage_ref: str | None = None,
        reason: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if storage_ref:
            details["storage_ref"] = storage_ref
        if reason:
            details["reason"] = reason
        super().__init__(message, "TRANSFER_ERROR", details)


class UploadCancelledException(FormsException):
    """Raised when the caller cancels an in-flight upload."""

    def __init__(self, storage_ref: str | None = None) -> None:
        details = {"storage_ref": storage_ref} if storage_ref else {}
        super().__init__("Upload cancelled", "UPLOAD_CANCELLED", details)


class FormNotFoundException(FormsException):
    """Raised when a form is missing or soft-deleted.

    Both cases surface identically to callers; `reason` keeps them apart
    for logging.
    """

    def __init__(self, form_id: str, reason: str = "missing") -> None:
        """Initialize with the form id and why the lookup missed.

        Args:
            form_id: The form ID that was not found.
            reason: 'missing' or 'deleted' (internal only).
        """
        super().__init__(
            f"Form not found: {form_id}",
            "FORM_NOT_FOUND",
            {"form_id": form_id},
        )
        self.reason = reason


class UploadNotFoundException(FormsException):
    """Raised when an upload id is not registered (finished or never started)."""

    def __init__(self, upload_id: str) -> None:
        super().__init__(
            f"Upload not found: {upload_id}",
            "UPLOAD_NOT_FOUND",
            {"upload_id": upload_id},
        )


class AuthenticationException(FormsException):
    """Raised when the caller's identity cannot be established."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")
