"""Firestore-backed user activity log and per-day form analytics (implements IActivityLog)."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from app.domain.enums import ActivityAction
from app.infrastructure.firebase._rest_client import FirestoreRESTClient
from app.infrastructure.firebase.collections import (
    COLLECTION_FORM_ANALYTICS,
    COLLECTION_USER_ACTIVITY,
    analytics_document_id,
)
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_cuid

_ANALYTICS_COUNTERS: dict[ActivityAction, str] = {
    ActivityAction.VIEW: "views",
    ActivityAction.DOWNLOAD: "downloads",
    ActivityAction.SEARCH: "searches",
}


def _plain(value: Any) -> Any:
    """Activity metadata as store-encodable plain values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    return value


class FirestoreActivityLog:
    """Append-only activity entries and upserted daily analytics documents.

    Callers treat every method as best-effort; errors propagate from here
    and are dropped by the caller's task runner.
    """

    def __init__(
        self,
        client: FirestoreRESTClient,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._activity = client.collection(COLLECTION_USER_ACTIVITY)
        self._analytics = client.collection(COLLECTION_FORM_ANALYTICS)
        self._clock = clock

    async def log_activity(
        self,
        user_id: str,
        action: ActivityAction,
        form_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        entry: dict[str, Any] = {
            "userId": user_id,
            "action": action.value,
            "timestamp": self._clock(),
        }
        if form_id:
            entry["formId"] = form_id
        if metadata:
            entry["metadata"] = _plain(metadata)
        await self._activity.create(generate_cuid(), entry)

    async def update_analytics(
        self, form_id: str, action: ActivityAction, user_id: str
    ) -> None:
        """Upsert ``{formId}_{YYYY-MM-DD}`` in one commit.

        Counters use increment transforms (a zero increment initializes
        missing counters); the user joins uniqueUsers via array union.
        """
        day = self._clock().date().isoformat()
        counter = _ANALYTICS_COUNTERS.get(action)
        increments = {name: 0 for name in _ANALYTICS_COUNTERS.values()}
        if counter:
            increments[counter] = 1
        await self._analytics.document(analytics_document_id(form_id, day)).update(
            {"formId": form_id, "date": day},
            increments=increments,
            array_unions={"uniqueUsers": [user_id]},
            must_exist=False,
        )
