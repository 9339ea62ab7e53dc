"""Blob stores for form PDFs: Firebase Storage (GCS resumable uploads) or local disk.

Both implement IStorageService and hand out chunked upload sessions, so the
transfer loop can pause, resume and cancel between chunks.
"""

from app.infrastructure.external.storage.factory import StorageFactory

__all__ = ["StorageFactory"]
