"""Forms API: thin routes delegating to the forms repository and FormUploadService."""

from datetime import date
from functools import partial
from typing import Annotated, BinaryIO

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile

from app.api.v1.dependencies import (
    get_current_user_id,
    get_form_repository,
    get_form_upload_service,
    get_upload_registry,
)
from app.application.dtos.form import FormCreate, FormFilter
from app.application.dtos.upload import FormFile
from app.application.interfaces.repositories import IFormRepository
from app.application.use_cases.forms import FormUploadService
from app.core.config import get_settings
from app.core.limiter import limit_upload, limit_writes
from app.core.upload_registry import UploadRegistry
from app.domain.enums import FormCategory, LineOfBusiness
from app.domain.exceptions import FormNotFoundException, FormsException
from app.schemas.form import (
    FormDownloadResponse,
    FormListResponse,
    FormResponse,
    FormStatsResponse,
    FormUpdateRequest,
    FormUploadResponse,
)

router = APIRouter()


def _split_list(raw: str | None) -> tuple[str, ...]:
    """Multipart forms send lists as comma-separated text."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _stream_size(stream: BinaryIO) -> int:
    position = stream.tell()
    stream.seek(0, 2)
    size = stream.tell()
    stream.seek(position)
    return size


@router.get("", response_model=FormListResponse)
async def list_forms(
    user_id: Annotated[str, Depends(get_current_user_id)],
    repository: Annotated[IFormRepository, Depends(get_form_repository)],
    q: str | None = Query(None, max_length=200, description="Keyword search text"),
    category: FormCategory | None = None,
    line_of_business: LineOfBusiness | None = None,
    is_active: bool | None = None,
    states: list[str] | None = Query(None),
    page_size: int | None = Query(None, ge=1, description="Defaults to FORMS_PAGE_SIZE"),
    cursor: str | None = None,
):
    """List forms newest first, or keyword-search when q is non-blank (no cursor)."""
    page_size = page_size or get_settings().forms_page_size
    form_filter = FormFilter(
        category=category,
        line_of_business=line_of_business,
        is_active=is_active,
        states=tuple(states or ()),
        query=q,
    )
    if form_filter.has_text:
        records = await repository.search_forms(
            q, form_filter, user_id=user_id, page_size=page_size
        )
        return FormListResponse(
            items=[FormResponse.model_validate(r) for r in records],
            next_cursor=None,
            has_more=False,
        )
    page = await repository.list_forms(form_filter, page_size, cursor)
    return FormListResponse(
        items=[FormResponse.model_validate(r) for r in page.records],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/stats", response_model=FormStatsResponse)
async def get_form_stats(
    _: Annotated[str, Depends(get_current_user_id)],
    repository: Annotated[IFormRepository, Depends(get_form_repository)],
):
    """Counts over all non-deleted forms. Defined before /{form_id} for route precedence."""
    stats = await repository.get_stats()
    return FormStatsResponse.model_validate(stats)


@router.post("", response_model=FormUploadResponse, status_code=201)
@limit_upload
async def upload_form(
    request: Request,
    user_id: Annotated[str, Depends(get_current_user_id)],
    upload_svc: Annotated[FormUploadService, Depends(get_form_upload_service)],
    registry: Annotated[UploadRegistry, Depends(get_upload_registry)],
    file: UploadFile = File(...),
    title: str = Form(...),
    form_number: str = Form(...),
    category: FormCategory = Form(...),
    line_of_business: LineOfBusiness = Form(...),
    edition_date: date = Form(...),
    effective_date: date = Form(...),
    state_applicability: str | None = Form(None, description="Comma-separated state codes"),
    tags: str | None = Form(None, description="Comma-separated tags"),
    description: str | None = Form(None),
    expiration_date: date | None = Form(None),
    is_active: bool = Form(True),
    version: str = Form("1.0"),
    upload_id: str | None = Form(
        None, description="Client-chosen id for progress, pause/resume and cancel"
    ),
):
    """Create a form record and upload its PDF.

    With upload_id, progress is readable at /uploads/{upload_id} and the
    transfer can be paused, resumed or cancelled from another request.
    """
    metadata = FormCreate(
        title=title,
        form_number=form_number,
        category=category,
        line_of_business=line_of_business,
        state_applicability=_split_list(state_applicability),
        edition_date=edition_date,
        effective_date=effective_date,
        description=description,
        expiration_date=expiration_date,
        tags=_split_list(tags),
        is_active=is_active,
        version=version,
    )
    form_file = FormFile(
        filename=file.filename or "",
        content_type=file.content_type or "",
        size=file.size if file.size is not None else _stream_size(file.file),
        data=file.file,
    )
    entry = registry.register(upload_id, user_id) if upload_id else None
    try:
        form_id = await upload_svc.upload_form(
            form_file,
            metadata,
            user_id,
            on_progress=partial(registry.record_progress, upload_id) if entry else None,
            control=entry.control if entry else None,
        )
    except Exception as e:
        if entry:
            message = e.message if isinstance(e, FormsException) else "Upload failed"
            registry.complete(entry.upload_id, None, message)
        raise
    if entry:
        registry.complete(entry.upload_id, form_id)
    return FormUploadResponse(id=form_id, upload_id=upload_id)


@router.get("/{form_id}", response_model=FormResponse)
async def get_form(
    form_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    repository: Annotated[IFormRepository, Depends(get_form_repository)],
):
    """Get a live form; counts a view."""
    record = await repository.get_form(form_id, user_id)
    if record is None:
        raise FormNotFoundException(form_id)
    return FormResponse.model_validate(record)


@router.get("/{form_id}/download", response_model=FormDownloadResponse)
async def download_form(
    form_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    repository: Annotated[IFormRepository, Depends(get_form_repository)],
):
    """Return the form's durable file URL; counts a download."""
    url = await repository.record_download(form_id, user_id)
    return FormDownloadResponse(url=url)


@router.patch("/{form_id}", status_code=204)
@limit_writes
async def update_form(
    request: Request,
    form_id: str,
    body: FormUpdateRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    repository: Annotated[IFormRepository, Depends(get_form_repository)],
) -> Response:
    """Partial update of a live form; only fields present in the body change."""
    await repository.update_form(form_id, body.model_dump(exclude_unset=True), user_id)
    return Response(status_code=204)


@router.delete("/{form_id}", status_code=204)
@limit_writes
async def delete_form(
    request: Request,
    form_id: str,
    user_id: Annotated[str, Depends(get_current_user_id)],
    repository: Annotated[IFormRepository, Depends(get_form_repository)],
) -> Response:
    """Soft delete: the form disappears from list, search, get and stats."""
    await repository.delete_form(form_id, user_id)
    return Response(status_code=204)
