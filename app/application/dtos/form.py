"""DTOs for form use cases (no dependency on the document store)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from app.domain.enums import FormCategory, LineOfBusiness


@dataclass(frozen=True)
class FormCreate:
    """Input for creating a form record (write-model). Repo fills audit fields and keywords."""

    title: str
    form_number: str
    category: FormCategory
    line_of_business: LineOfBusiness
    state_applicability: tuple[str, ...]
    edition_date: date
    effective_date: date
    description: str | None = None
    expiration_date: date | None = None
    tags: tuple[str, ...] = ()
    is_active: bool = True
    version: str = "1.0"


@dataclass(frozen=True)
class FormRecord:
    """Form read-model (result of get_form, list_forms, search_forms, subscriptions).

    Timestamps are timezone-aware UTC; dates are calendar dates.
    """

    id: str
    title: str
    form_number: str
    category: FormCategory
    line_of_business: LineOfBusiness
    state_applicability: tuple[str, ...]
    edition_date: date | None
    effective_date: date | None
    is_active: bool
    is_deleted: bool
    created_by: str | None
    modified_by: str | None
    created_at: datetime | None
    updated_at: datetime | None
    description: str | None = None
    expiration_date: date | None = None
    tags: tuple[str, ...] = ()
    version: str = "1.0"
    file_url: str | None = None
    file_size: int | None = None
    uploaded_by: str | None = None
    uploaded_at: datetime | None = None
    last_modified: datetime | None = None
    view_count: int = 0
    download_count: int = 0
    search_keywords: frozenset[str] = frozenset()
    deleted_at: datetime | None = None
    deleted_by: str | None = None


@dataclass(frozen=True)
class FormFilter:
    """Structured filter plus optional free-text query.

    A non-blank query selects the keyword-search path; otherwise the
    structured fields drive a cursor-paginated listing.
    """

    category: FormCategory | None = None
    line_of_business: LineOfBusiness | None = None
    is_active: bool | None = None
    states: tuple[str, ...] = ()
    query: str | None = None

    @property
    def has_text(self) -> bool:
        return bool(self.query and self.query.strip())


@dataclass(frozen=True)
class FormPage:
    """One page of a listing. next_cursor is opaque; None when the page is empty."""

    records: list[FormRecord]
    next_cursor: str | None
    has_more: bool


@dataclass(frozen=True)
class FormStats:
    """Aggregate counts over non-deleted forms."""

    total_forms: int
    active_forms: int
    inactive_forms: int
    recent_uploads: int
    counts_by_category: dict[str, int] = field(default_factory=dict)
    counts_by_state: dict[str, int] = field(default_factory=dict)
