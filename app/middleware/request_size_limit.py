"""Request body size limit middleware.

Multipart uploads may carry up to ``upload_max_bytes``; every other body is
held to ``max_bytes``. Bodies with a Content-Length are checked up front;
bodies without one (chunked) are read up to the limit and replayed.
Uses raw ASGI (no BaseHTTPMiddleware).
"""

import json
from typing import Any, Callable


def _get_header(scope: dict, name: str) -> str | None:
    """Return first header value for name (case-insensitive)."""
    want = name.lower().encode()
    for k, v in scope.get("headers", []):
        if k.lower() == want:
            return v.decode("latin-1")
    return None


async def _send_413(send: Callable, limit: int, actual: int | None = None) -> None:
    details: dict[str, Any] = {"max_bytes": limit}
    if actual is not None:
        details["received_bytes"] = actual
    body = json.dumps(
        {
            "error": "PAYLOAD_TOO_LARGE",
            "message": f"Request body must be at most {limit} bytes",
            "details": details,
        }
    ).encode()
    await send({
        "type": "http.response.start",
        "status": 413,
        "headers": [(b"content-type", b"application/json")],
    })
    await send({"type": "http.response.body", "body": body, "more_body": False})


def _limit_for(scope: dict, max_bytes: int, upload_max_bytes: int) -> int:
    content_type = (_get_header(scope, "content-type") or "").lower()
    if content_type.startswith("multipart/form-data"):
        return upload_max_bytes
    return max_bytes


def RequestSizeLimitMiddleware(
    app: Callable, max_bytes: int, upload_max_bytes: int | None = None
) -> Callable:
    """Reject oversized bodies with 413 before the route reads them. Raw ASGI."""
    upload_limit = upload_max_bytes or max_bytes

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        limit = _limit_for(scope, max_bytes, upload_limit)
        content_length = _get_header(scope, "content-length")
        if content_length is not None:
            if content_length.strip().isdigit() and int(content_length) > limit:
                await _send_413(send, limit, int(content_length))
                return
            await app(scope, receive, send)
            return

        chunks: list[dict] = []
        total = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # Client disconnected mid-body.
                return
            total += len(message.get("body", b""))
            if total > limit:
                await _send_413(send, limit, total)
                return
            chunks.append(message)
            if not message.get("more_body", False):
                break

        async def replay() -> dict:
            if chunks:
                return chunks.pop(0)
            return await receive()

        await app(scope, replay, send)

    return asgi_app
