"""Process-wide Firestore client for the forms collections.

Credentials come from FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) or
FIREBASE_SERVICE_ACCOUNT_PATH (file). The Firebase Storage backend reuses
the same service account through load_service_account_info().
"""

import json
import logging
from pathlib import Path

from app.core.config import get_settings
from app.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)

logger = logging.getLogger(__name__)

_firestore_client: FirestoreRESTClient | None = None


def load_service_account_info() -> dict | None:
    """Service account JSON as a dict, or None when neither setting is present."""
    settings = get_settings()
    secret = settings.firebase_service_account_key
    if secret is not None and secret.get_secret_value():
        try:
            return json.loads(secret.get_secret_value())
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    if not settings.firebase_service_account_path:
        return None
    path = Path(settings.firebase_service_account_path).expanduser().resolve()
    if not path.is_file():
        logger.warning("Service account file not found: %s", path)
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def resolve_project_id(key_dict: dict | None) -> str | None:
    """FIREBASE_PROJECT_ID, else the service account's project_id."""
    configured = get_settings().firebase_project_id
    if configured:
        return configured
    return (key_dict or {}).get("project_id")


def init_firebase() -> FirestoreRESTClient | None:
    """Create the shared client on first call; later calls return it.

    Missing or broken credentials are logged and yield None, so the API still
    starts and the form routes answer 503.
    """
    global _firestore_client
    if _firestore_client is not None:
        return _firestore_client
    try:
        key_dict = load_service_account_info()
        if not key_dict:
            return None
        project_id = resolve_project_id(key_dict)
        if not project_id:
            logger.error("No Firebase project id (service account or FIREBASE_PROJECT_ID)")
            return None
        _firestore_client = FirestoreRESTClient(project_id, _get_credentials(key_dict))
    except Exception:
        logger.exception("Firestore initialization failed")
        return None
    logger.info("Firestore client ready for project %s", project_id)
    return _firestore_client


async def close_firebase() -> None:
    """Release the HTTP pool; safe to call when never initialized."""
    global _firestore_client
    if _firestore_client is None:
        return
    await _firestore_client.aclose()
    _firestore_client = None
