"""Caller identity (composition root).

Bearer Firebase ID tokens are the normal path. When AUTH_ALLOW_USER_HEADER
is set (local development, trusted gateways) a plain user id header is
accepted instead.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, WebSocket
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from app.core.config import get_settings
from app.domain.exceptions import AuthenticationException
from app.infrastructure.firebase.auth import verify_firebase_token
from app.shared.utils.sanitization import validate_identifier

_http_bearer = HTTPBearer(auto_error=False)


async def resolve_user_id(
    connection: HTTPConnection, token: str | None, header_user_id: str | None
) -> str:
    """Return the caller's user id from a token or (if allowed) the user header."""
    settings = get_settings()
    if token:
        project_id = getattr(connection.app.state, "firebase_project_id", None)
        if not project_id:
            raise AuthenticationException("Token verification is not configured")
        return await verify_firebase_token(token, project_id)
    if settings.auth_allow_user_header and header_user_id:
        try:
            return validate_identifier(header_user_id.strip())
        except ValueError as e:
            raise AuthenticationException("Invalid user id header") from e
    raise AuthenticationException("Not authenticated")


async def get_current_user_id(
    connection: HTTPConnection,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_http_bearer)],
) -> str:
    """Return the authenticated user id; 401 when missing or invalid."""
    header_name = get_settings().user_id_header_name
    return await resolve_user_id(
        connection,
        credentials.credentials if credentials else None,
        connection.headers.get(header_name),
    )


async def get_websocket_user_id(websocket: WebSocket) -> str:
    """WebSocket variant: browsers cannot set headers, so ?token= is accepted."""
    header_name = get_settings().user_id_header_name
    token = websocket.query_params.get("token")
    authorization = websocket.headers.get("authorization", "")
    if not token and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    header_user_id = websocket.headers.get(header_name) or websocket.query_params.get("user_id")
    return await resolve_user_id(websocket, token, header_user_id)
