"""Presentation-layer dependency injection (composition root).

Routes depend only on these providers, not on infrastructure directly.
"""

from app.api.v1.dependencies.auth import get_current_user_id, get_websocket_user_id
from app.api.v1.dependencies.forms import (
    get_form_repository,
    get_form_upload_service,
    get_storage_service,
    get_upload_registry,
)

__all__ = [
    "get_current_user_id",
    "get_form_repository",
    "get_form_upload_service",
    "get_storage_service",
    "get_upload_registry",
    "get_websocket_user_id",
]
