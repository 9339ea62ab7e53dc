"""Application layer: interfaces, services, use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (forms repository, activity log, storage).
"""

from app.application.interfaces import (
    IActivityLog,
    IFormRepository,
    IFormSubscription,
    IStorageService,
    IUploadSession,
)
from app.application.services.upload_transfer import TransferControl, UploadTask
from app.application.use_cases.forms import FormsQueryController, FormUploadService

__all__ = [
    "FormUploadService",
    "FormsQueryController",
    "IActivityLog",
    "IFormRepository",
    "IFormSubscription",
    "IStorageService",
    "IUploadSession",
    "TransferControl",
    "UploadTask",
]
