"""Validates and normalizes form metadata before it reaches the repository.

Free-text fields are stripped of HTML (nh3); state codes are upper-cased
two-letter codes; enum and date fields accept their string forms so API and
script callers can pass raw values.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import date
from typing import Any

from app.application.dtos.form import FormCreate
from app.domain.enums import FormCategory, LineOfBusiness
from app.domain.exceptions import ValidationException
from app.shared.utils.sanitization import strip_markup

STATE_CODE_PATTERN = re.compile(r"^[A-Z]{2}$")

# FormRecord fields a caller may change through update_form.
UPDATABLE_FIELDS = frozenset({
    "title",
    "description",
    "form_number",
    "category",
    "line_of_business",
    "tags",
    "state_applicability",
    "edition_date",
    "effective_date",
    "expiration_date",
    "is_active",
    "version",
    "file_url",
    "file_size",
})


def _clean_text(value: Any, field: str, *, required: bool) -> str | None:
    if value is None:
        if required:
            raise ValidationException(f"{field} is required", field=field)
        return None
    if not isinstance(value, str):
        raise ValidationException(f"{field} must be a string", field=field)
    cleaned = strip_markup(value).strip()
    if not cleaned:
        if required:
            raise ValidationException(f"{field} must not be blank", field=field)
        return None
    return cleaned


def _states(values: Iterable[str] | None, field: str = "state_applicability") -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        raise ValidationException(f"{field} must be a list of state codes", field=field)
    out: list[str] = []
    for raw in values:
        code = str(raw).strip().upper()
        if not STATE_CODE_PATTERN.match(code):
            raise ValidationException(f"Invalid state code: {raw!r}", field=field)
        if code not in out:
            out.append(code)
    return tuple(out)


def _tags(values: Iterable[str] | None) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        raise ValidationException("tags must be a list of strings", field="tags")
    out: list[str] = []
    for raw in values:
        tag = _clean_text(raw, "tags", required=False)
        if tag and tag not in out:
            out.append(tag)
    return tuple(out)


def _date(value: Any, field: str, *, required: bool) -> date | None:
    if value is None or value == "":
        if required:
            raise ValidationException(f"{field} is required", field=field)
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValidationException(f"{field} must be an ISO date (YYYY-MM-DD)", field=field) from e


def _category(value: Any) -> FormCategory:
    try:
        return FormCategory(value)
    except ValueError as e:
        raise ValidationException(
            f"Unknown category {value!r}; expected one of {FormCategory.values()}",
            field="category",
        ) from e


def _line_of_business(value: Any) -> LineOfBusiness:
    try:
        return LineOfBusiness(value)
    except ValueError as e:
        raise ValidationException(
            f"Unknown line of business {value!r}; expected one of {LineOfBusiness.values()}",
            field="line_of_business",
        ) from e


def _check_date_order(effective: date | None, expiration: date | None) -> None:
    if effective and expiration and expiration < effective:
        raise ValidationException(
            "expiration_date must not be before effective_date",
            field="expiration_date",
        )


def validate_form_create(data: FormCreate) -> FormCreate:
    """Return a sanitized copy of data; raise ValidationException on bad input."""
    cleaned = replace(
        data,
        title=_clean_text(data.title, "title", required=True),
        form_number=_clean_text(data.form_number, "form_number", required=True),
        description=_clean_text(data.description, "description", required=False),
        category=_category(data.category),
        line_of_business=_line_of_business(data.line_of_business),
        state_applicability=_states(data.state_applicability),
        tags=_tags(data.tags),
        edition_date=_date(data.edition_date, "edition_date", required=True),
        effective_date=_date(data.effective_date, "effective_date", required=True),
        expiration_date=_date(data.expiration_date, "expiration_date", required=False),
        version=_clean_text(data.version, "version", required=False) or "1.0",
    )
    _check_date_order(cleaned.effective_date, cleaned.expiration_date)
    return cleaned


def validate_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a partial update keyed by FormRecord field names.

    Returns:
        New dict with normalized values (enums, dates, tuples).

    Raises:
        ValidationException: Unknown or immutable field, or invalid value.
    """
    unknown = sorted(set(changes) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationException(
            f"Fields cannot be updated: {', '.join(unknown)}", field=unknown[0]
        )
    out: dict[str, Any] = {}
    for key, value in changes.items():
        if key in ("title", "form_number"):
            out[key] = _clean_text(value, key, required=True)
        elif key in ("description", "file_url"):
            out[key] = _clean_text(value, key, required=False)
        elif key == "version":
            out[key] = _clean_text(value, key, required=True)
        elif key == "category":
            out[key] = _category(value)
        elif key == "line_of_business":
            out[key] = _line_of_business(value)
        elif key == "tags":
            out[key] = _tags(value)
        elif key == "state_applicability":
            out[key] = _states(value)
        elif key in ("edition_date", "effective_date"):
            out[key] = _date(value, key, required=True)
        elif key == "expiration_date":
            out[key] = _date(value, key, required=False)
        elif key == "is_active":
            if not isinstance(value, bool):
                raise ValidationException("is_active must be a boolean", field=key)
            out[key] = value
        elif key == "file_size":
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                raise ValidationException("file_size must be a non-negative integer", field=key)
            out[key] = value
    return out
