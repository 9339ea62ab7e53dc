"""Identifiers for form documents, activity entries and download tokens."""

import uuid

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """New CUID2 used as a Firestore document id (forms and activity log)."""
    value = _next_cuid()
    if not isinstance(value, str):
        raise TypeError(f"cuid2 returned {type(value).__name__}, expected str")
    return value


def generate_download_token() -> str:
    """Token that authorizes anonymous reads of a stored PDF.

    Firebase Storage expects UUID4 values in firebaseStorageDownloadTokens;
    the local backend uses the same format.
    """
    return str(uuid.uuid4())
