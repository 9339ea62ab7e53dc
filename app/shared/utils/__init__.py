"""Time, id, text-cleaning and background-write helpers."""

from app.shared.utils.background import BestEffortTasks
from app.shared.utils.datetime import ensure_utc, parse_iso_utc, to_timestamp_ms, utc_now
from app.shared.utils.generators import generate_cuid, generate_download_token
from app.shared.utils.sanitization import safe_file_stem, strip_markup, validate_identifier

__all__ = [
    "BestEffortTasks",
    "ensure_utc",
    "generate_cuid",
    "generate_download_token",
    "parse_iso_utc",
    "safe_file_stem",
    "strip_markup",
    "to_timestamp_ms",
    "utc_now",
    "validate_identifier",
]
