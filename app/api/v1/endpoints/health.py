"""Health check endpoints. No auth; used for liveness and readiness checks."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Forms store not configured", "model": ReadinessErrorResponse}},
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 when the forms repository is wired; 503 otherwise."""
    settings = get_settings()
    if getattr(request.app.state, "form_repository", None) is None:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(
                message="Firestore is not configured",
            ).model_dump(),
        )
    registry = getattr(request.app.state, "upload_registry", None)
    return ReadinessResponse(
        storage_backend=settings.storage_backend,
        firebase_project_id=getattr(request.app.state, "firebase_project_id", None),
        uploads_in_flight=registry.in_flight_count() if registry is not None else 0,
    )
