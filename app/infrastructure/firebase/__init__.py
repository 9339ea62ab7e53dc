"""Firestore access for the forms, userActivity and formAnalytics collections."""

from app.infrastructure.firebase.client import close_firebase, init_firebase

__all__ = ["close_firebase", "init_firebase"]
