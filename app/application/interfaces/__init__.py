"""Application interfaces (ports): repository and storage protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from app.infrastructure.
"""

from app.application.interfaces.repositories import (
    FormsCallback,
    IActivityLog,
    IFormRepository,
    IFormSubscription,
    Unsubscribe,
)
from app.application.interfaces.storage import IStorageService, IUploadSession

__all__ = [
    "FormsCallback",
    "IActivityLog",
    "IFormRepository",
    "IFormSubscription",
    "IStorageService",
    "IUploadSession",
    "Unsubscribe",
]
