"""Firestore REST ``Value`` codec.

Form documents only hold strings, booleans, integers, timestamps and string
arrays; the remaining value kinds are supported so that activity entries and
cursors round-trip too. Dates (effective/expiration) are stored as ISO strings.
"""

import base64
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any


@dataclass(frozen=True)
class Reference:
    """Full document name, sent as ``referenceValue`` (cursor tie-breaker)."""

    name: str


def encode_value(value: Any) -> dict:
    """One Python value as a Firestore ``Value`` object."""
    # bool before int, datetime before date: both are subclasses.
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return {"timestampValue": value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")}
    if isinstance(value, date):
        return {"stringValue": value.isoformat()}
    if isinstance(value, Reference):
        return {"referenceValue": value.name}
    if isinstance(value, bytes):
        return {"bytesValue": base64.standard_b64encode(value).decode("ascii")}
    if isinstance(value, (set, frozenset)):
        # Sorted so token sets encode identically on every write.
        value = sorted(value)
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot store {type(value).__name__} in Firestore")


def encode_fields(data: dict[str, Any]) -> dict:
    """Python dict to a REST ``fields`` mapping."""
    return {key: encode_value(value) for key, value in data.items()}


def encode_document(data: dict[str, Any]) -> dict:
    return {"fields": encode_fields(data)}


def _parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def _decode_array(raw: dict) -> list:
    return [decode_value(v) for v in raw.get("values") or []]


def _decode_map(raw: dict) -> dict:
    return decode_document(raw.get("fields"))


_DECODERS: dict[str, Callable[[Any], Any]] = {
    "nullValue": lambda _: None,
    "booleanValue": bool,
    "integerValue": int,
    "doubleValue": float,
    "stringValue": str,
    "timestampValue": _parse_timestamp,
    "referenceValue": Reference,
    "bytesValue": base64.standard_b64decode,
    "arrayValue": _decode_array,
    "mapValue": _decode_map,
}


def decode_value(obj: dict) -> Any:
    """Firestore ``Value`` object to Python; unknown kinds (geoPoint) become None."""
    for kind, raw in obj.items():
        decoder = _DECODERS.get(kind)
        if decoder is not None:
            return decoder(raw)
    return None


def decode_document(fields: dict | None) -> dict:
    """REST ``fields`` mapping to a Python dict."""
    return {key: decode_value(value) for key, value in (fields or {}).items()}
