"""Conversion between form documents (camelCase fields) and FormRecord.

Store-native values never leave this module: timestamps become aware UTC
datetimes, YYYY-MM-DD strings become dates, arrays become tuples.
"""

from __future__ import annotations

import base64
import binascii
import json
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from app.application.dtos.form import FormRecord
from app.domain.enums import FormCategory, LineOfBusiness
from app.domain.exceptions import ValidationException
from app.infrastructure.firebase.collections import FORM_FIELD_NAMES
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import ensure_utc, parse_iso_utc

logger = get_logger(__name__)

_DATE_FIELDS = frozenset({"edition_date", "effective_date", "expiration_date"})
_TIMESTAMP_FIELDS = frozenset({
    "created_at", "uploaded_at", "updated_at", "last_modified", "deleted_at",
})


def _store_value(key: str, value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if key in _DATE_FIELDS and isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (frozenset, set)):
        return sorted(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def to_store_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Map FormRecord field names to stored names, converting values for the store."""
    out: dict[str, Any] = {}
    for key, value in fields.items():
        try:
            stored = FORM_FIELD_NAMES[key]
        except KeyError:
            raise ValueError(f"Unknown form field: {key}") from None
        out[stored] = _store_value(key, value)
    return out


def _as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("Ignoring malformed stored date: %r", value)
        return None


def _as_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return parse_iso_utc(str(value))
    except ValueError:
        logger.warning("Ignoring malformed stored timestamp: %r", value)
        return None


def _as_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Any:
    try:
        return enum_cls(value)
    except ValueError:
        return default


def form_from_document(doc_id: str, data: Mapping[str, Any]) -> FormRecord:
    """Build a FormRecord from a stored form document."""
    fields: dict[str, Any] = {}
    for key, stored in FORM_FIELD_NAMES.items():
        if stored in data:
            fields[key] = data[stored]

    for key in _DATE_FIELDS:
        fields[key] = _as_date(fields.get(key))
    for key in _TIMESTAMP_FIELDS:
        fields[key] = _as_timestamp(fields.get(key))

    return FormRecord(
        id=doc_id,
        title=fields.get("title") or "",
        form_number=fields.get("form_number") or "",
        category=_as_enum(FormCategory, fields.get("category"), FormCategory.OTHER),
        line_of_business=_as_enum(
            LineOfBusiness, fields.get("line_of_business"), LineOfBusiness.OTHER
        ),
        state_applicability=tuple(fields.get("state_applicability") or ()),
        edition_date=fields["edition_date"],
        effective_date=fields["effective_date"],
        expiration_date=fields["expiration_date"],
        is_active=bool(fields.get("is_active", True)),
        is_deleted=bool(fields.get("is_deleted", False)),
        created_by=fields.get("created_by"),
        modified_by=fields.get("modified_by"),
        uploaded_by=fields.get("uploaded_by"),
        created_at=fields["created_at"],
        updated_at=fields["updated_at"],
        uploaded_at=fields["uploaded_at"],
        last_modified=fields["last_modified"],
        description=fields.get("description"),
        tags=tuple(fields.get("tags") or ()),
        version=fields.get("version") or "1.0",
        file_url=fields.get("file_url"),
        file_size=fields.get("file_size"),
        view_count=int(fields.get("view_count") or 0),
        download_count=int(fields.get("download_count") or 0),
        search_keywords=frozenset(fields.get("search_keywords") or ()),
        deleted_at=fields["deleted_at"],
        deleted_by=fields.get("deleted_by"),
    )


def encode_cursor(record: FormRecord) -> str | None:
    """Opaque cursor for the position after record in updatedAt desc, id desc order."""
    if record.updated_at is None:
        return None
    payload = json.dumps(
        {"u": record.updated_at.isoformat(), "id": record.id},
        separators=(",", ":"),
    )
    return base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, str]:
    """Return (updated_at, form_id) from a cursor; ValidationException if malformed."""
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
        updated_at = parse_iso_utc(payload["u"])
        form_id = payload["id"]
    except (binascii.Error, ValueError, KeyError, TypeError, AttributeError) as e:
        raise ValidationException("Invalid cursor", field="cursor") from e
    if updated_at is None or not isinstance(form_id, str) or not form_id:
        raise ValidationException("Invalid cursor", field="cursor")
    return updated_at, form_id
