"""UTC helpers for form timestamps.

Firestore returns timestamps as RFC 3339 strings; generated file names use
epoch milliseconds. Everything inside the app is timezone-aware UTC.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Default clock for repositories and the upload pipeline."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    # Naive values are taken to be UTC already.
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_iso_utc(value: str | None) -> datetime | None:
    """Parse an RFC 3339 / ISO-8601 string ("Z" suffix allowed)."""
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def to_timestamp_ms(dt: datetime) -> int:
    """Milliseconds since the Unix epoch, as embedded in stored file names."""
    return int(ensure_utc(dt).timestamp() * 1000)
