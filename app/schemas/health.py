"""Responses of the liveness and readiness checks."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """GET /health: the process is up."""

    status: str = Field(default="ok", description="Always 'ok'")


class ReadinessResponse(BaseModel):
    """GET /health/ready when Firestore is wired and uploads can be stored."""

    status: str = Field(default="ok", description="Readiness status")
    storage_backend: str = Field(..., description="'firebase' or 'local'")
    firebase_project_id: str | None = Field(
        None, description="Project the forms collection lives in"
    )
    uploads_in_flight: int = Field(0, description="Tracked uploads not yet finished")


class ReadinessErrorResponse(BaseModel):
    """GET /health/ready (503) before the forms repository exists."""

    status: str = Field(default="not_ready", description="Readiness status")
    message: str = Field(..., description="What is missing")
