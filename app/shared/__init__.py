"""Helpers used across layers: ids, UTC time, best-effort background writes."""

from app.shared.utils import (
    BestEffortTasks,
    ensure_utc,
    generate_cuid,
    generate_download_token,
    utc_now,
)

__all__ = [
    "BestEffortTasks",
    "ensure_utc",
    "generate_cuid",
    "generate_download_token",
    "utc_now",
]
