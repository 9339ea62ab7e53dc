"""In-memory stand-ins for the Firestore REST client and the activity log.

FakeFirestore mirrors the surface the repositories use (collection,
document get/update/create, where/order_by/start_after/limit/stream).
Values round-trip through the real REST codec so tests see exactly the
types the live client returns.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from collections.abc import AsyncIterator, Mapping
from datetime import UTC, date, datetime, timedelta
from typing import Any

import httpx

from app.application.dtos.form import FormCreate
from app.domain.enums import ActivityAction, FormCategory, LineOfBusiness
from app.infrastructure.firebase._rest_client import DocumentExistsError
from app.infrastructure.firebase._rest_encoding import decode_document, encode_fields

TEST_USER_ID = "user-1"


def _roundtrip(data: Mapping[str, Any]) -> dict[str, Any]:
    return decode_document(encode_fields(dict(data)))


class FakeSnapshot:
    def __init__(self, doc_id: str, data: dict[str, Any]) -> None:
        self.id = doc_id
        self._data = data

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


class FakeFirestore:
    """Collections of documents kept in dicts, with per-operation failure injection."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._failures: set[tuple[str, str | None]] = set()
        self.calls: list[tuple[str, str]] = []

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def fail(self, operation: str, collection: str | None = None) -> None:
        """Make ``operation`` (get, create, update, stream) raise a transport error."""
        self._failures.add((operation, collection))

    def heal(self) -> None:
        self._failures.clear()

    def check(self, operation: str, collection: str) -> None:
        self.calls.append((operation, collection))
        if (operation, None) in self._failures or (operation, collection) in self._failures:
            raise httpx.ConnectError(f"injected {operation} failure on {collection}")

    def put(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """Write raw stored fields directly (test setup)."""
        self.data[collection][doc_id] = _roundtrip(fields)


class FakeDocument:
    def __init__(self, store: FakeFirestore, collection: str, doc_id: str) -> None:
        self._store = store
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self) -> dict[str, dict[str, Any]]:
        return self._store.data[self._collection]

    async def get(self) -> FakeSnapshot | None:
        self._store.check("get", self._collection)
        data = self._docs.get(self.id)
        return None if data is None else FakeSnapshot(self.id, data)

    async def update(
        self,
        data: dict[str, Any],
        *,
        increments: dict[str, int] | None = None,
        array_unions: dict[str, list[Any]] | None = None,
        must_exist: bool = True,
    ) -> bool:
        self._store.check("update", self._collection)
        current = self._docs.get(self.id)
        if current is None:
            if must_exist:
                return False
            current = {}
        current.update(_roundtrip(data))
        for field, amount in (increments or {}).items():
            current[field] = (current.get(field) or 0) + amount
        for field, values in (array_unions or {}).items():
            existing = list(current.get(field) or [])
            existing.extend(v for v in values if v not in existing)
            current[field] = existing
        self._docs[self.id] = current
        return True


def _matches(data: dict[str, Any], field: str, op: str, value: Any) -> bool:
    if field not in data:
        return False
    actual = data[field]
    if op == "==":
        return actual == value
    if op == "array-contains-any":
        return isinstance(actual, list) and any(v in actual for v in value)
    if op == "array-contains":
        return isinstance(actual, list) and value in actual
    if op == "in":
        return actual in value
    raise AssertionError(f"Fake does not support operator {op!r}")


class FakeQuery:
    def __init__(self, store: FakeFirestore, collection: str) -> None:
        self._store = store
        self._collection = collection
        self._filters: list[tuple[str, str, Any]] = []
        self._orders: list[tuple[str, bool]] = []
        self._start_after: tuple[Any, ...] | None = None
        self._limit: int | None = None

    def where(self, field: str, op: str, value: Any) -> FakeQuery:
        self._filters.append((field, op, value))
        return self

    def order_by(self, field: str, direction: str = "ASCENDING") -> FakeQuery:
        self._orders.append((field, direction.upper().startswith("DESC")))
        return self

    def start_after(self, *values: Any) -> FakeQuery:
        self._start_after = values
        return self

    def limit(self, n: int | None) -> FakeQuery:
        self._limit = n
        return self

    @staticmethod
    def _value(doc_id: str, data: dict[str, Any], field: str) -> Any:
        return doc_id if field == "__name__" else data.get(field)

    def _is_after(self, doc_id: str, data: dict[str, Any]) -> bool:
        for (field, descending), cursor in zip(self._orders, self._start_after or ()):
            value = self._value(doc_id, data, field)
            if value == cursor:
                continue
            return value < cursor if descending else value > cursor
        return False

    async def stream(self) -> AsyncIterator[FakeSnapshot]:
        self._store.check("stream", self._collection)
        docs = [
            (doc_id, data)
            for doc_id, data in list(self._store.data[self._collection].items())
            if all(_matches(data, f, op, v) for f, op, v in self._filters)
            and all(f == "__name__" or f in data for f, _ in self._orders)
        ]
        for field, descending in reversed(self._orders):
            docs.sort(key=lambda item: self._value(item[0], item[1], field), reverse=descending)
        if self._start_after is not None:
            docs = [item for item in docs if self._is_after(*item)]
        if self._limit:
            docs = docs[: self._limit]
        for doc_id, data in docs:
            yield FakeSnapshot(doc_id, data)


class FakeCollection:
    def __init__(self, store: FakeFirestore, name: str) -> None:
        self._store = store
        self._name = name

    def document(self, doc_id: str) -> FakeDocument:
        return FakeDocument(self._store, self._name, doc_id)

    async def create(self, doc_id: str, data: dict[str, Any]) -> None:
        self._store.check("create", self._name)
        docs = self._store.data[self._name]
        if doc_id in docs:
            raise DocumentExistsError("Document already exists")
        docs[doc_id] = _roundtrip(data)

    def where(self, field: str, op: str, value: Any) -> FakeQuery:
        return FakeQuery(self._store, self._name).where(field, op, value)


class RecordingActivityLog:
    """IActivityLog that records calls; optionally raises to exercise best-effort paths."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.activities: list[tuple[str, ActivityAction, str | None, dict[str, Any] | None]] = []
        self.analytics: list[tuple[str, ActivityAction, str]] = []

    async def log_activity(
        self,
        user_id: str,
        action: ActivityAction,
        form_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        if self.fail:
            raise RuntimeError("activity log unavailable")
        self.activities.append((user_id, action, form_id, dict(metadata) if metadata else None))

    async def update_analytics(self, form_id: str, action: ActivityAction, user_id: str) -> None:
        if self.fail:
            raise RuntimeError("analytics unavailable")
        self.analytics.append((form_id, action, user_id))


class FakeClock:
    """Settable UTC clock; each call returns the current value."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_form(**overrides: Any) -> FormCreate:
    """Valid FormCreate with sensible defaults; override any field."""
    values: dict[str, Any] = dict(
        title="Commercial General Liability Application",
        form_number="CGL-001-CA",
        category=FormCategory.APPLICATION,
        line_of_business=LineOfBusiness.GENERAL_LIABILITY,
        state_applicability=("CA", "NV"),
        edition_date=date(2024, 1, 15),
        effective_date=date(2024, 2, 1),
        description="Standard application for general liability coverage",
        tags=("liability", "commercial"),
        version="2024.1",
    )
    values.update(overrides)
    return FormCreate(**values)


PDF_BYTES = b"%PDF-1.7\n" + b"1" * 4096

# Multipart fields for POST /api/v1/forms
FORM_FIELDS = {
    "title": "Commercial General Liability Application",
    "form_number": "CGL-001-CA",
    "category": "Application",
    "line_of_business": "General Liability",
    "edition_date": "2024-01-15",
    "effective_date": "2024-02-01",
    "state_applicability": "CA, NV",
    "tags": "liability,commercial",
    "version": "2024.1",
}
