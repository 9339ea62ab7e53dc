"""Firestore-backed forms repository (implements IFormRepository).

Primary operations raise PersistenceException when the store fails.
Counters, activity entries and analytics are best-effort side effects:
they run as background tasks and their failures are only logged.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine, Mapping
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Any

import httpx

from app.application.dtos.form import (
    FormCreate,
    FormFilter,
    FormPage,
    FormRecord,
    FormStats,
)
from app.application.interfaces.repositories import (
    FormsCallback,
    IActivityLog,
    Unsubscribe,
)
from app.application.services.form_metadata_validator import (
    validate_changes,
    validate_form_create,
)
from app.application.services.keyword_extractor import (
    KEYWORD_SOURCE_FIELDS,
    keywords_for,
    tokenize_query,
)
from app.domain.enums import ActivityAction
from app.domain.exceptions import (
    FormNotFoundException,
    PersistenceException,
    ValidationException,
)
from app.infrastructure.firebase._rest_client import (
    DocumentExistsError,
    FirestoreRESTClient,
    Query,
)
from app.infrastructure.firebase.collections import COLLECTION_FORMS
from app.infrastructure.firebase.repositories.activity_log_firestore import (
    FirestoreActivityLog,
)
from app.infrastructure.firebase.repositories.form_mapping import (
    decode_cursor,
    encode_cursor,
    form_from_document,
    to_store_fields,
)
from app.infrastructure.firebase.repositories.form_subscription import (
    FormSubscription,
    run_subscription,
)
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, traced
from app.shared.utils.background import BestEffortTasks
from app.shared.utils.datetime import utc_now
from app.shared.utils.generators import generate_cuid

logger = get_logger(__name__)

# Firestore caps array-contains-any / in at 30 values.
MAX_DISJUNCTION_VALUES = 30


@contextmanager
def _store_errors(operation: str):
    """Translate transport/HTTP failures into PersistenceException."""
    try:
        yield
    except (httpx.HTTPError, DocumentExistsError) as e:
        logger.error("Firestore operation failed: %s: %s", operation, e)
        raise PersistenceException(operation, str(e) or type(e).__name__) from e


class FirestoreFormRepository:
    """Forms repository using Firestore. Same contract as IFormRepository."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        activity_log: IActivityLog | None = None,
        *,
        tasks: BestEffortTasks | None = None,
        clock: Callable[[], datetime] = utc_now,
        max_page_size: int = 100,
        realtime_limit: int = 50,
        poll_interval_seconds: float = 5.0,
        recent_upload_days: int = 30,
    ) -> None:
        self._client = client
        self._forms = client.collection(COLLECTION_FORMS)
        self._activity = activity_log or FirestoreActivityLog(client, clock=clock)
        self._tasks = tasks or BestEffortTasks()
        self._clock = clock
        self._max_page_size = max_page_size
        self._realtime_limit = realtime_limit
        self._poll_interval = poll_interval_seconds
        self._recent_upload_days = recent_upload_days

    @property
    def tasks(self) -> BestEffortTasks:
        return self._tasks

    def _best_effort(self, coro: Coroutine[Any, Any, Any], description: str) -> None:
        self._tasks.spawn(coro, description)

    def _check_page_size(self, page_size: int) -> None:
        if not 1 <= page_size <= self._max_page_size:
            raise ValidationException(
                f"page_size must be between 1 and {self._max_page_size}",
                field="page_size",
            )

    def _filtered(self, form_filter: FormFilter, *, structured: bool = True) -> Query:
        """Base query: live forms narrowed by the filter's equality fields.

        The keyword-search path narrows by category and is_active only.
        """
        q = self._forms.where("isDeleted", "==", False)
        if form_filter.category is not None:
            q = q.where("category", "==", form_filter.category.value)
        if structured and form_filter.line_of_business is not None:
            q = q.where("lineOfBusiness", "==", form_filter.line_of_business.value)
        if form_filter.is_active is not None:
            q = q.where("isActive", "==", form_filter.is_active)
        if structured and form_filter.states:
            states = sorted({s.strip().upper() for s in form_filter.states if s.strip()})
            if len(states) > MAX_DISJUNCTION_VALUES:
                raise ValidationException(
                    f"At most {MAX_DISJUNCTION_VALUES} states can be filtered at once",
                    field="states",
                )
            if states:
                q = q.where("stateApplicability", "array-contains-any", states)
        return q

    async def _load_live(self, form_id: str, operation: str) -> FormRecord:
        with _store_errors(operation):
            snap = await self._forms.document(form_id).get()
        if snap is None:
            raise FormNotFoundException(form_id)
        record = form_from_document(snap.id, snap.to_dict())
        if record.is_deleted:
            raise FormNotFoundException(form_id, reason="deleted")
        return record

    @traced("forms.create")
    async def create_form(self, data: FormCreate, user_id: str) -> str:
        """Persist a new form; returns the generated id."""
        data = validate_form_create(data)
        form_id = generate_cuid()
        now = self._clock()
        fields: dict[str, Any] = asdict(data)
        fields.update(
            created_by=user_id,
            modified_by=user_id,
            uploaded_by=user_id,
            created_at=now,
            updated_at=now,
            uploaded_at=now,
            last_modified=now,
            is_deleted=False,
            view_count=0,
            download_count=0,
            search_keywords=keywords_for(fields),
        )
        with _store_errors("create form"):
            await self._forms.create(form_id, to_store_fields(fields))
        add_span_attributes(form_id=form_id)
        logger.info("Form created: id=%s number=%s by=%s", form_id, data.form_number, user_id)
        self._best_effort(
            self._activity.log_activity(user_id, ActivityAction.UPLOAD, form_id),
            "log upload activity",
        )
        return form_id

    @traced("forms.list")
    async def list_forms(
        self,
        form_filter: FormFilter | None = None,
        page_size: int = 20,
        cursor: str | None = None,
    ) -> FormPage:
        """Return one page of live forms ordered updatedAt desc, id desc.

        has_more is True iff the page came back full; a full final page
        therefore reports has_more and the next call returns an empty page.
        """
        self._check_page_size(page_size)
        q = (
            self._filtered(form_filter or FormFilter())
            .order_by("updatedAt", "DESCENDING")
            .order_by("__name__", "DESCENDING")
        )
        if cursor:
            updated_at, last_id = decode_cursor(cursor)
            q = q.start_after(updated_at, last_id)
        q = q.limit(page_size)
        with _store_errors("list forms"):
            records = [form_from_document(s.id, s.to_dict()) async for s in q.stream()]
        next_cursor = encode_cursor(records[-1]) if records else None
        return FormPage(
            records=records,
            next_cursor=next_cursor,
            has_more=len(records) == page_size,
        )

    @traced("forms.search")
    async def search_forms(
        self,
        text: str,
        form_filter: FormFilter | None = None,
        *,
        user_id: str | None = None,
        page_size: int = 20,
    ) -> list[FormRecord]:
        """Records whose keywords contain ANY query token, newest first.

        Blank text falls back to the first page of list_forms.
        """
        form_filter = form_filter or FormFilter()
        tokens = tokenize_query(text or "")
        if not tokens:
            page = await self.list_forms(form_filter, page_size)
            return page.records
        self._check_page_size(page_size)
        if len(tokens) > MAX_DISJUNCTION_VALUES:
            logger.debug("Search truncated to %d tokens", MAX_DISJUNCTION_VALUES)
            tokens = tokens[:MAX_DISJUNCTION_VALUES]
        q = (
            self._filtered(form_filter, structured=False)
            .where("searchKeywords", "array-contains-any", tokens)
            .order_by("updatedAt", "DESCENDING")
            .limit(page_size)
        )
        with _store_errors("search forms"):
            records = [form_from_document(s.id, s.to_dict()) async for s in q.stream()]
        if user_id:
            self._best_effort(
                self._activity.log_activity(
                    user_id,
                    ActivityAction.SEARCH,
                    metadata={"query": text, "results": len(records)},
                ),
                "log search activity",
            )
        return records

    @traced("forms.get")
    async def get_form(self, form_id: str, user_id: str | None = None) -> FormRecord | None:
        """Return a live form; None when missing or soft-deleted."""
        with _store_errors("fetch form"):
            snap = await self._forms.document(form_id).get()
        if snap is None:
            return None
        record = form_from_document(snap.id, snap.to_dict())
        if record.is_deleted:
            return None
        self._best_effort(
            self._forms.document(form_id).update({}, increments={"viewCount": 1}),
            "increment view count",
        )
        if user_id:
            self._best_effort(
                self._activity.log_activity(user_id, ActivityAction.VIEW, form_id),
                "log view activity",
            )
            self._best_effort(
                self._activity.update_analytics(form_id, ActivityAction.VIEW, user_id),
                "update view analytics",
            )
        return record

    @traced("forms.update")
    async def update_form(self, form_id: str, changes: Mapping[str, Any], user_id: str) -> None:
        """Merge changes into a live form (last write wins)."""
        normalized = validate_changes(changes)
        current = await self._load_live(form_id, "update form")
        now = self._clock()
        fields: dict[str, Any] = dict(normalized)
        fields.update(modified_by=user_id, updated_at=now, last_modified=now)
        if KEYWORD_SOURCE_FIELDS & normalized.keys():
            merged = {**asdict(current), **normalized}
            fields["search_keywords"] = keywords_for(merged)
        with _store_errors("update form"):
            found = await self._forms.document(form_id).update(to_store_fields(fields))
        if not found:
            raise FormNotFoundException(form_id)
        logger.info("Form updated: id=%s fields=%s by=%s", form_id, sorted(normalized), user_id)
        self._best_effort(
            self._activity.log_activity(user_id, ActivityAction.EDIT, form_id, normalized),
            "log edit activity",
        )

    @traced("forms.delete")
    async def delete_form(self, form_id: str, user_id: str) -> None:
        """Soft delete: the record and its file stay in place."""
        await self._load_live(form_id, "delete form")
        now = self._clock()
        with _store_errors("delete form"):
            found = await self._forms.document(form_id).update(
                to_store_fields({
                    "is_deleted": True,
                    "deleted_at": now,
                    "deleted_by": user_id,
                    "updated_at": now,
                })
            )
        if not found:
            raise FormNotFoundException(form_id)
        logger.info("Form soft-deleted: id=%s by=%s", form_id, user_id)
        self._best_effort(
            self._activity.log_activity(user_id, ActivityAction.DELETE, form_id),
            "log delete activity",
        )

    @traced("forms.stats")
    async def get_stats(self) -> FormStats:
        """Full scan of live forms; states fan out (one form counts once per state)."""
        q = self._forms.where("isDeleted", "==", False)
        with _store_errors("compute form statistics"):
            records = [form_from_document(s.id, s.to_dict()) async for s in q.stream()]
        cutoff = self._clock() - timedelta(days=self._recent_upload_days)
        by_category: dict[str, int] = {}
        by_state: dict[str, int] = {}
        active = recent = 0
        for record in records:
            if record.is_active:
                active += 1
            created = record.created_at or record.uploaded_at
            if created is not None and created >= cutoff:
                recent += 1
            category = record.category.value
            by_category[category] = by_category.get(category, 0) + 1
            for state in record.state_applicability:
                by_state[state] = by_state.get(state, 0) + 1
        return FormStats(
            total_forms=len(records),
            active_forms=active,
            inactive_forms=len(records) - active,
            recent_uploads=recent,
            counts_by_category=by_category,
            counts_by_state=by_state,
        )

    @traced("forms.download")
    async def record_download(self, form_id: str, user_id: str) -> str:
        """Return the file URL of a live form and count the download."""
        record = await self._load_live(form_id, "fetch form")
        if not record.file_url:
            raise FormNotFoundException(form_id, reason="no file")
        self._best_effort(
            self._forms.document(form_id).update({}, increments={"downloadCount": 1}),
            "increment download count",
        )
        self._best_effort(
            self._activity.log_activity(user_id, ActivityAction.DOWNLOAD, form_id),
            "log download activity",
        )
        self._best_effort(
            self._activity.update_analytics(form_id, ActivityAction.DOWNLOAD, user_id),
            "update download analytics",
        )
        return record.file_url

    def watch_forms(self, form_filter: FormFilter | None = None) -> FormSubscription:
        """Open a polling subscription over the newest matching forms."""
        form_filter = form_filter or FormFilter()
        if form_filter.has_text:
            raise ValidationException(
                "Realtime subscriptions do not support text search", field="query"
            )
        q = (
            self._filtered(form_filter)
            .order_by("updatedAt", "DESCENDING")
            .order_by("__name__", "DESCENDING")
            .limit(self._realtime_limit)
        )

        async def fetch() -> list[FormRecord]:
            with _store_errors("watch forms"):
                return [form_from_document(s.id, s.to_dict()) async for s in q.stream()]

        return FormSubscription(fetch, self._poll_interval)

    async def subscribe_to_forms(
        self, form_filter: FormFilter | None, on_update: FormsCallback
    ) -> Unsubscribe:
        """Deliver snapshots to on_update until the returned callable is awaited."""
        return run_subscription(self.watch_forms(form_filter), on_update)
