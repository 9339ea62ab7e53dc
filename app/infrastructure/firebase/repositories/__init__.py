"""Firestore-backed repository implementations."""

from app.infrastructure.firebase.repositories.activity_log_firestore import (
    FirestoreActivityLog,
)
from app.infrastructure.firebase.repositories.form_repo_firestore import (
    FirestoreFormRepository,
)
from app.infrastructure.firebase.repositories.form_subscription import (
    FormSubscription,
)

__all__ = [
    "FirestoreActivityLog",
    "FirestoreFormRepository",
    "FormSubscription",
]
