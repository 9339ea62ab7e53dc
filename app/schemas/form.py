"""Form API schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.enums import FormCategory, LineOfBusiness


class FormResponse(BaseModel):
    """A form record as returned by list, search, get and the live feed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    form_number: str
    description: str | None = None
    category: FormCategory
    line_of_business: LineOfBusiness
    state_applicability: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    edition_date: date | None = None
    effective_date: date | None = None
    expiration_date: date | None = None
    is_active: bool
    version: str
    file_url: str | None = None
    file_size: int | None = None
    uploaded_by: str | None = None
    uploaded_at: datetime | None = None
    created_by: str | None = None
    modified_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    view_count: int = 0
    download_count: int = 0


class FormListResponse(BaseModel):
    """One page of forms. Keyword search results never carry a cursor."""

    items: list[FormResponse]
    next_cursor: str | None = None
    has_more: bool = False


class FormUpdateRequest(BaseModel):
    """Request body for PATCH /forms/{form_id} (partial; unset fields are untouched)."""

    title: str | None = Field(default=None, max_length=500)
    form_number: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=5000)
    category: FormCategory | None = None
    line_of_business: LineOfBusiness | None = None
    state_applicability: list[str] | None = None
    tags: list[str] | None = None
    edition_date: date | None = None
    effective_date: date | None = None
    expiration_date: date | None = None
    is_active: bool | None = None
    version: str | None = Field(default=None, max_length=50)


class FormStatsResponse(BaseModel):
    """Response for GET /forms/stats."""

    model_config = ConfigDict(from_attributes=True)

    total_forms: int
    active_forms: int
    inactive_forms: int
    recent_uploads: int
    counts_by_category: dict[str, int] = Field(default_factory=dict)
    counts_by_state: dict[str, int] = Field(default_factory=dict)


class FormUploadResponse(BaseModel):
    """Response for POST /forms (record created and file linked)."""

    id: str
    upload_id: str | None = None


class FormDownloadResponse(BaseModel):
    """Response for GET /forms/{form_id}/download."""

    url: str


class UploadStatusResponse(BaseModel):
    """Response for GET /uploads/{upload_id} and the pause/resume/cancel actions."""

    upload_id: str
    state: str = Field(..., description="pending, running, paused, success, canceled or error")
    form_id: str | None = None
    error: str | None = None
    bytes_transferred: int = 0
    total_bytes: int = 0
    percentage: float = 0.0
    created_at: datetime
    finished_at: datetime | None = None
