"""JSON error responses for the forms API.

Every error body has the shape ``{"error", "message", "details"}``. Domain
errors carry their own code; the table below decides the status.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.domain.exceptions import FormsException

logger = logging.getLogger(__name__)

# FormsException.error_code -> HTTP status. Unlisted codes answer 400.
ERROR_STATUS: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "STORAGE_PERMISSION_ERROR": 400,
    "AUTHENTICATION_ERROR": 401,
    "FORM_NOT_FOUND": 404,
    "UPLOAD_NOT_FOUND": 404,
    "STORAGE_NOT_FOUND": 404,
    # Client closed request: the user cancelled the upload.
    "UPLOAD_CANCELLED": 499,
    "TRANSFER_ERROR": 502,
    "STORAGE_ERROR": 502,
    "PERSISTENCE_ERROR": 503,
}


def status_for(exc: FormsException) -> int:
    return ERROR_STATUS.get(exc.error_code, 400)


def _error_body(code: str, message: object, details: object = None) -> dict:
    return {"error": code, "message": message, "details": details or {}}


async def _forms_error(request: Request, exc: FormsException) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        # Firestore / Storage trouble; the client only sees the message.
        logger.warning(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            exc.error_code,
            exc.message,
        )
    return JSONResponse(status_code=status, content=exc.to_dict())


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=_error_body(
            "VALIDATION_ERROR", "Request validation failed", jsonable_encoder(exc.errors())
        ),
    )


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTP_ERROR", exc.detail),
        headers=exc.headers,
    )


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(status_code=500, content=_error_body("INTERNAL_ERROR", message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FormsException, _forms_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)
