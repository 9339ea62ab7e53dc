"""Async Firestore REST v1 client used by the forms repositories.

Covers what the forms collections need: create with a chosen id, get,
field-masked commits with increment / arrayUnion transforms, and runQuery
with AND-ed filters, ordering, a start-after cursor and a limit. Access
tokens come from google-auth service account credentials.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import AsyncIterator, Iterable
from typing import Any
from urllib.parse import quote

import httpx

from app.infrastructure.firebase._rest_encoding import (
    Reference,
    decode_document,
    encode_document,
    encode_fields,
    encode_value,
)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"
_DOCUMENT_ID_FIELD = "__name__"
_SIMPLE_FIELD_PATH = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Operators accepted by where(); both Python SDK and JS SDK spellings.
_OPERATORS: dict[str, str] = {
    "==": "EQUAL",
    "!=": "NOT_EQUAL",
    "<": "LESS_THAN",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    ">=": "GREATER_THAN_OR_EQUAL",
    "in": "IN",
    "array_contains": "ARRAY_CONTAINS",
    "array-contains": "ARRAY_CONTAINS",
    "array_contains_any": "ARRAY_CONTAINS_ANY",
    "array-contains-any": "ARRAY_CONTAINS_ANY",
}


def _get_credentials(key_dict: dict, scopes: Iterable[str] = (_FIRESTORE_SCOPE,)):
    """Service account credentials (Firestore scope unless told otherwise)."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=list(scopes)
    )


def _get_access_token(credentials) -> str:
    # Blocking (requests); callers run it in a worker thread.
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


def _field_path(name: str) -> str:
    """Backtick-quote field names that are not plain identifiers."""
    if name == _DOCUMENT_ID_FIELD or _SIMPLE_FIELD_PATH.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


class DocumentExistsError(Exception):
    """create() hit an existing document id (HTTP 409)."""


class DocumentSnapshot:
    """Decoded document: ``id`` plus ``to_dict()``."""

    def __init__(self, id_: str, data: dict):
        self.id = id_
        self._data = data

    @classmethod
    def from_rest(cls, doc: dict) -> DocumentSnapshot:
        name = doc.get("name", "")
        return cls(name.rsplit("/", 1)[-1], decode_document(doc.get("fields")))

    def to_dict(self) -> dict:
        return self._data


class DocumentReference:
    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path.rsplit("/", 1)[-1]

    async def get(self) -> DocumentSnapshot | None:
        out = await self._client.request("GET", self._path)
        if not out:
            return None
        return DocumentSnapshot(self.id, decode_document(out.get("fields")))

    async def update(
        self,
        data: dict[str, Any],
        *,
        increments: dict[str, int] | None = None,
        array_unions: dict[str, list[Any]] | None = None,
        must_exist: bool = True,
    ) -> bool:
        """Write the keys of ``data`` plus server-side transforms in one commit.

        ``increments`` map to ``increment`` transforms and ``array_unions``
        to ``appendMissingElements``. Without ``must_exist`` the commit
        creates the document (analytics rows).

        Returns:
            False when must_exist is set and the document is missing.
        """
        write: dict[str, Any] = {
            "update": {"name": self._path, "fields": encode_fields(data)},
            "updateMask": {"fieldPaths": [_field_path(k) for k in data]},
        }
        transforms = [
            {"fieldPath": _field_path(field), "increment": encode_value(amount)}
            for field, amount in (increments or {}).items()
        ]
        transforms.extend(
            {
                "fieldPath": _field_path(field),
                "appendMissingElements": {"values": [encode_value(v) for v in values]},
            }
            for field, values in (array_unions or {}).items()
        )
        if transforms:
            write["updateTransforms"] = transforms
        if must_exist:
            write["currentDocument"] = {"exists": True}
        out = await self._client.request(
            "POST", f"{self._client.database_path}:commit", {"writes": [write]}
        )
        return out is not None


class Query:
    """AND-ed filters, ordering, start-after cursor and limit for runQuery.

    ``start_after`` takes one value per order_by field; the value for
    ``__name__`` is the bare document id.
    """

    def __init__(self, client: FirestoreRESTClient, collection_path: str):
        self._client = client
        self._collection_path = collection_path
        self._parent, self._collection_id = collection_path.rsplit("/", 1)
        self._filters: list[dict[str, Any]] = []
        self._orders: list[tuple[str, str]] = []
        self._cursor: tuple[Any, ...] | None = None
        self._limit: int | None = None

    def where(self, field: str, op: str, value: Any) -> Query:
        self._filters.append({
            "fieldFilter": {
                "field": {"fieldPath": field},
                "op": _OPERATORS.get(op, op),
                "value": encode_value(value),
            }
        })
        return self

    def order_by(self, field: str, direction: str = "ASCENDING") -> Query:
        direction = "DESCENDING" if direction.upper().startswith("DESC") else "ASCENDING"
        self._orders.append((field, direction))
        return self

    def start_after(self, *values: Any) -> Query:
        if len(values) > len(self._orders):
            raise ValueError("start_after has more values than order_by fields")
        self._cursor = values
        return self

    def limit(self, n: int | None) -> Query:
        self._limit = n
        return self

    def _cursor_value(self, field: str, value: Any) -> dict:
        if field == _DOCUMENT_ID_FIELD and isinstance(value, str):
            value = Reference(f"{self._collection_path}/{value}")
        return encode_value(value)

    def to_structured_query(self) -> dict[str, Any]:
        query: dict[str, Any] = {"from": [{"collectionId": self._collection_id}]}
        if len(self._filters) == 1:
            query["where"] = self._filters[0]
        elif self._filters:
            query["where"] = {"compositeFilter": {"op": "AND", "filters": self._filters}}
        if self._orders:
            query["orderBy"] = [
                {"field": {"fieldPath": field}, "direction": direction}
                for field, direction in self._orders
            ]
        if self._cursor is not None:
            query["startAt"] = {
                "values": [
                    self._cursor_value(field, value)
                    for (field, _), value in zip(self._orders, self._cursor)
                ],
                "before": False,
            }
        if self._limit:
            query["limit"] = self._limit
        return query

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        out = await self._client.request(
            "POST",
            f"{self._parent}:runQuery",
            {"structuredQuery": self.to_structured_query()},
        )
        # runQuery answers with a list; entries without "document" only carry readTime.
        for item in out if isinstance(out, list) else []:
            if "document" in item:
                yield DocumentSnapshot.from_rest(item["document"])


class CollectionReference:
    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path.rstrip("/")

    def document(self, document_id: str) -> DocumentReference:
        return DocumentReference(self._client, f"{self._path}/{document_id}")

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        """Create ``document_id``; DocumentExistsError if it is taken."""
        await self._client.request(
            "POST",
            f"{self._path}?documentId={quote(document_id, safe='')}",
            encode_document(data),
        )

    def where(self, field: str, op: str, value: Any) -> Query:
        return Query(self._client, self._path).where(field, op, value)


class FirestoreRESTClient:
    """Firestore over REST for one project's (default) database."""

    def __init__(
        self,
        project_id: str,
        credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.project_id = project_id
        self._credentials = credentials
        self.database_path = f"projects/{project_id}/databases/(default)"
        self._documents = f"{self.database_path}/documents"
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=30.0)
        self._owns_http = http_client is None

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, f"{self._documents}/{collection_id}")

    async def get_token(self) -> str:
        return await asyncio.to_thread(_get_access_token, self._credentials)

    async def request(self, method: str, path: str, body: dict | None = None) -> Any:
        """Authenticated call to ``{_BASE}/{path}``.

        Returns the decoded JSON body, or None on 404. Raises
        DocumentExistsError on 409 and httpx.HTTPStatusError on other failures.
        """
        resp = await self._http.request(
            method,
            f"{_BASE}/{path}",
            json=body,
            headers={"Authorization": f"Bearer {await self.get_token()}"},
        )
        if resp.status_code == 404:
            return None
        if resp.status_code == 409:
            raise DocumentExistsError(path)
        resp.raise_for_status()
        return json.loads(resp.content) if resp.content else {}

    async def aclose(self) -> None:
        # An injected http_client belongs to the caller.
        if self._owns_http:
            await self._http.aclose()
