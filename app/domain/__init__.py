"""Domain layer: enums and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.enums import (
    ActivityAction,
    FormCategory,
    LineOfBusiness,
    UploadState,
)
from app.domain.exceptions import (
    AuthenticationException,
    FormNotFoundException,
    FormsException,
    PersistenceException,
    TransferException,
    UploadCancelledException,
    UploadNotFoundException,
    ValidationException,
)

__all__ = [
    # Enums
    "ActivityAction",
    "FormCategory",
    "LineOfBusiness",
    "UploadState",
    # Exceptions
    "AuthenticationException",
    "FormNotFoundException",
    "FormsException",
    "PersistenceException",
    "TransferException",
    "UploadCancelledException",
    "UploadNotFoundException",
    "ValidationException",
]
