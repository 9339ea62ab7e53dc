"""WebSocket live feed: /forms/ws pushes the matching forms on every change.

Auth: ?token=<Firebase ID token> (or the user id header when allowed).
Filter: ?category=&line_of_business=&is_active=&states=CA&states=NY.
Each message is {"type": "forms", "items": [...]} with the full matching
set, newest first. Client messages are ignored.
If the store fails while polling, the socket is closed with code 1011.
"""

import asyncio

from fastapi import APIRouter, WebSocket
from starlette.datastructures import QueryParams

from app.api.v1.dependencies import get_form_repository, get_websocket_user_id
from app.application.dtos.form import FormFilter
from app.domain.enums import FormCategory, LineOfBusiness
from app.domain.exceptions import FormsException, ValidationException
from app.schemas.form import FormResponse
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Close reasons must fit in a 125-byte control frame.
_MAX_CLOSE_REASON = 120


async def _reject_websocket(websocket: WebSocket, reason: str, code: int = 1008) -> None:
    """Accept then immediately close with code/reason so client gets a proper close frame."""
    await websocket.accept()
    await websocket.close(code=code, reason=reason)


def _filter_from_query(params: QueryParams) -> FormFilter:
    try:
        category = FormCategory(params["category"]) if params.get("category") else None
        lob = (
            LineOfBusiness(params["line_of_business"])
            if params.get("line_of_business")
            else None
        )
    except ValueError as e:
        raise ValidationException(str(e)) from e
    raw_active = params.get("is_active")
    is_active = None if raw_active is None else raw_active.lower() in ("1", "true", "yes")
    return FormFilter(
        category=category,
        line_of_business=lob,
        is_active=is_active,
        states=tuple(params.getlist("states")),
    )


@router.websocket("/ws")
async def forms_feed(websocket: WebSocket):
    """Stream forms snapshots until the client disconnects."""
    try:
        user_id = await get_websocket_user_id(websocket)
        repository = get_form_repository(websocket)
        subscription = repository.watch_forms(_filter_from_query(websocket.query_params))
    except FormsException as e:
        await _reject_websocket(websocket, e.message)
        return

    await websocket.accept()
    logger.info("Forms feed opened for %s", user_id)

    async def push_snapshots() -> None:
        async with subscription:
            async for records in subscription:
                await websocket.send_json({
                    "type": "forms",
                    "items": [
                        FormResponse.model_validate(r).model_dump(mode="json") for r in records
                    ],
                })

    async def wait_for_disconnect() -> None:
        # Client messages are read only to notice the disconnect.
        while True:
            await websocket.receive_text()

    pusher = asyncio.create_task(push_snapshots(), name="forms-feed-push")
    reader = asyncio.create_task(wait_for_disconnect(), name="forms-feed-read")
    try:
        await asyncio.wait({pusher, reader}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (pusher, reader):
            task.cancel()
        await asyncio.gather(pusher, reader, return_exceptions=True)

    if reader.done() and not reader.cancelled():
        logger.info("Forms feed closed for %s", user_id)
        return
    error = pusher.exception() if not pusher.cancelled() else None
    if error is None:
        await websocket.close(code=1000)
    elif isinstance(error, FormsException):
        logger.warning("Forms feed for %s stopped: %s", user_id, error.message)
        await websocket.close(code=1011, reason=error.message[:_MAX_CLOSE_REASON])
    else:
        logger.error("Forms feed for %s failed", user_id, exc_info=error)
        await websocket.close(code=1011, reason="Internal error")
