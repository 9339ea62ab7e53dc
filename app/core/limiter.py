"""SlowAPI limiter shared by main (app.state.limiter) and the forms routes.

Limits are read from settings on each request, so tests and deployments
can change them through the environment. Keys are client addresses.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def _upload_limit() -> str:
    return get_settings().rate_limit_uploads


def _write_limit() -> str:
    return get_settings().rate_limit_writes


# PDF uploads (multipart and tracked) are throttled harder than metadata writes.
limit_upload = limiter.limit(_upload_limit)
limit_writes = limiter.limit(_write_limit)
