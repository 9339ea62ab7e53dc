"""Domain enumerations for the forms library.

Enums represent fixed sets of domain values. Values match what is stored in
the document store so existing records round-trip unchanged.
"""

from enum import Enum


class FormCategory(str, Enum):
    """Kind of insurance form."""

    APPLICATION = "Application"
    POLICY = "Policy"
    ENDORSEMENT = "Endorsement"
    CERTIFICATE = "Certificate"
    CLAIMS = "Claims"
    UNDERWRITING = "Underwriting"
    BILLING = "Billing"
    OTHER = "Other"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid category values as strings.

        Returns:
            List of enum value strings (e.g. for validation or serialization).
        """
        return [category.value for category in cls]


class LineOfBusiness(str, Enum):
    """Insurance line of business a form belongs to."""

    AUTO = "Auto"
    PROPERTY = "Property"
    GENERAL_LIABILITY = "General Liability"
    WORKERS_COMPENSATION = "Workers Compensation"
    PROFESSIONAL_LIABILITY = "Professional Liability"
    CYBER = "Cyber"
    UMBRELLA = "Umbrella"
    COMMERCIAL_PACKAGE = "Commercial Package"
    PERSONAL_LINES = "Personal Lines"
    OTHER = "Other"

    @classmethod
    def values(cls) -> list[str]:
        return [lob.value for lob in cls]


class UploadState(str, Enum):
    """State reported with each upload progress event.

    SUCCESS, CANCELED and ERROR are terminal: no event follows them.
    """

    RUNNING = "running"
    PAUSED = "paused"
    SUCCESS = "success"
    CANCELED = "canceled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.SUCCESS, UploadState.CANCELED, UploadState.ERROR)


class ActivityAction(str, Enum):
    """User activity recorded in the audit collection."""

    VIEW = "view"
    DOWNLOAD = "download"
    UPLOAD = "upload"
    EDIT = "edit"
    DELETE = "delete"
    SEARCH = "search"
