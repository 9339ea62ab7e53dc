"""Firebase ID token verification (google-auth, no firebase-admin)."""

from __future__ import annotations

import asyncio
import logging

from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import id_token

from app.domain.exceptions import AuthenticationException

logger = logging.getLogger(__name__)


def _verify(token: str, project_id: str) -> str:
    claims = id_token.verify_firebase_token(token, Request(), audience=project_id)
    user_id = (claims or {}).get("sub") or (claims or {}).get("user_id")
    if not user_id:
        raise AuthenticationException("Token has no subject")
    return str(user_id)


async def verify_firebase_token(token: str, project_id: str) -> str:
    """Return the Firebase uid for a valid ID token.

    Signature check fetches Google's public certs, so it runs in a thread.

    Raises:
        AuthenticationException: Token is malformed, expired or for another project.
    """
    try:
        return await asyncio.to_thread(_verify, token, project_id)
    except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
        logger.info("Rejected Firebase ID token: %s", e)
        raise AuthenticationException("Invalid or expired token") from e
