"""Tests for FirestoreFormRepository against the in-memory Firestore fake."""

import pytest

from app.application.dtos.form import FormFilter
from app.domain.enums import ActivityAction, FormCategory, LineOfBusiness
from app.domain.exceptions import (
    FormNotFoundException,
    PersistenceException,
    ValidationException,
)
from app.infrastructure.firebase.repositories import FirestoreFormRepository
from app.shared.utils.background import BestEffortTasks
from tests.fakes import FakeClock, FakeFirestore, RecordingActivityLog, make_form

USER = "user-1"


async def _create_many(repo: FirestoreFormRepository, clock: FakeClock, count: int) -> list[str]:
    ids = []
    for i in range(count):
        ids.append(await repo.create_form(make_form(form_number=f"F-{i:03d}"), USER))
        clock.advance(seconds=1)
    return ids


class TestCreateForm:
    """Tests for create_form."""

    async def test_stores_camel_case_fields_and_audit_values(
        self, repo, store: FakeFirestore, clock: FakeClock
    ) -> None:
        form_id = await repo.create_form(make_form(), USER)
        stored = store.data["forms"][form_id]
        assert stored["formNumber"] == "CGL-001-CA"
        assert stored["lineOfBusiness"] == "General Liability"
        assert stored["stateApplicability"] == ["CA", "NV"]
        assert stored["editionDate"] == "2024-01-15"
        assert stored["isDeleted"] is False
        assert stored["viewCount"] == 0
        assert stored["createdBy"] == stored["modifiedBy"] == USER
        assert stored["createdAt"] == clock.now
        assert "cgl-001-ca" in stored["searchKeywords"]

    async def test_logs_upload_activity(
        self, repo, activity: RecordingActivityLog, tasks: BestEffortTasks
    ) -> None:
        form_id = await repo.create_form(make_form(), USER)
        await tasks.drain()
        assert activity.activities == [(USER, ActivityAction.UPLOAD, form_id, None)]

    async def test_invalid_metadata_never_reaches_store(self, repo, store: FakeFirestore) -> None:
        with pytest.raises(ValidationException):
            await repo.create_form(make_form(title=""), USER)
        assert store.calls == []

    async def test_store_failure_raises_persistence_error(self, repo, store: FakeFirestore) -> None:
        store.fail("create", "forms")
        with pytest.raises(PersistenceException) as exc_info:
            await repo.create_form(make_form(), USER)
        assert exc_info.value.details["operation"] == "create form"


class TestListForms:
    """Tests for list_forms (cursor pagination)."""

    async def test_twenty_five_records_in_pages_of_twenty(self, repo, clock: FakeClock) -> None:
        ids = await _create_many(repo, clock, 25)

        first = await repo.list_forms(FormFilter(), 20)
        assert len(first.records) == 20
        assert first.has_more is True
        assert first.next_cursor
        assert [r.id for r in first.records] == list(reversed(ids))[:20]

        second = await repo.list_forms(FormFilter(), 20, first.next_cursor)
        assert len(second.records) == 5
        assert second.has_more is False
        assert {r.id for r in first.records}.isdisjoint(r.id for r in second.records)

    async def test_same_timestamp_broken_by_id(self, repo) -> None:
        for i in range(3):
            await repo.create_form(make_form(form_number=f"T-{i}"), USER)
        first = await repo.list_forms(FormFilter(), 2)
        second = await repo.list_forms(FormFilter(), 2, first.next_cursor)
        ids = [r.id for r in first.records + second.records]
        assert len(ids) == len(set(ids)) == 3
        assert ids == sorted(ids, reverse=True)

    async def test_empty_page_has_no_cursor(self, repo) -> None:
        page = await repo.list_forms()
        assert page.records == []
        assert page.next_cursor is None
        assert page.has_more is False

    async def test_structured_filters(self, repo, clock: FakeClock) -> None:
        await repo.create_form(make_form(category=FormCategory.POLICY, state_applicability=("TX",)), USER)
        clock.advance(seconds=1)
        await repo.create_form(
            make_form(line_of_business=LineOfBusiness.AUTO, is_active=False, state_applicability=("NY",)),
            USER,
        )

        policies = await repo.list_forms(FormFilter(category=FormCategory.POLICY))
        assert [r.category for r in policies.records] == [FormCategory.POLICY]
        inactive = await repo.list_forms(FormFilter(is_active=False))
        assert [r.line_of_business for r in inactive.records] == [LineOfBusiness.AUTO]
        texas_or_ny = await repo.list_forms(FormFilter(states=("tx", "NY")))
        assert len(texas_or_ny.records) == 2

    async def test_invalid_cursor_rejected(self, repo) -> None:
        with pytest.raises(ValidationException) as exc_info:
            await repo.list_forms(FormFilter(), 20, "not-a-cursor")
        assert exc_info.value.details["field"] == "cursor"

    @pytest.mark.parametrize("page_size", [0, 101])
    async def test_page_size_bounds(self, repo, page_size: int) -> None:
        with pytest.raises(ValidationException):
            await repo.list_forms(FormFilter(), page_size)

    async def test_too_many_states_rejected(self, repo) -> None:
        states = tuple(f"{chr(65 + i // 26)}{chr(65 + i % 26)}" for i in range(31))
        with pytest.raises(ValidationException) as exc_info:
            await repo.list_forms(FormFilter(states=states))
        assert exc_info.value.details["field"] == "states"


class TestSearchForms:
    """Tests for search_forms (any-token keyword match)."""

    async def test_any_token_matches(self, repo, store: FakeFirestore, clock: FakeClock) -> None:
        store.put("forms", "f-auto", {
            "title": "Auto Liability",
            "formNumber": "AL-1",
            "category": "Policy",
            "lineOfBusiness": "Auto",
            "isActive": True,
            "isDeleted": False,
            "searchKeywords": ["auto", "liability"],
            "updatedAt": clock.now,
        })
        results = await repo.search_forms("auto endorsement")
        assert [r.id for r in results] == ["f-auto"]

    async def test_narrowed_by_category(self, repo, clock: FakeClock) -> None:
        await repo.create_form(make_form(title="Cyber Application", category=FormCategory.APPLICATION), USER)
        clock.advance(seconds=1)
        await repo.create_form(make_form(title="Cyber Policy", category=FormCategory.POLICY), USER)

        results = await repo.search_forms("cyber", FormFilter(category=FormCategory.POLICY))
        assert [r.title for r in results] == ["Cyber Policy"]

    async def test_blank_text_falls_back_to_listing(self, repo, clock: FakeClock) -> None:
        await _create_many(repo, clock, 3)
        results = await repo.search_forms("   ", page_size=2)
        assert len(results) == 2

    async def test_logs_search_activity(
        self, repo, activity: RecordingActivityLog, tasks: BestEffortTasks
    ) -> None:
        await repo.create_form(make_form(), USER)
        await tasks.drain()
        activity.activities.clear()

        results = await repo.search_forms("liability", user_id=USER)
        await tasks.drain()
        assert activity.activities == [
            (USER, ActivityAction.SEARCH, None, {"query": "liability", "results": len(results)})
        ]

    async def test_deleted_forms_excluded(self, repo) -> None:
        form_id = await repo.create_form(make_form(title="Umbrella Policy"), USER)
        await repo.delete_form(form_id, USER)
        assert await repo.search_forms("umbrella") == []


class TestGetForm:
    """Tests for get_form and its best-effort side effects."""

    async def test_missing_returns_none(self, repo) -> None:
        assert await repo.get_form("nope") is None

    async def test_counts_view_and_logs(
        self,
        repo,
        store: FakeFirestore,
        activity: RecordingActivityLog,
        tasks: BestEffortTasks,
    ) -> None:
        form_id = await repo.create_form(make_form(), USER)
        record = await repo.get_form(form_id, "viewer")
        await tasks.drain()

        assert record is not None
        assert record.id == form_id
        assert store.data["forms"][form_id]["viewCount"] == 1
        assert (("viewer", ActivityAction.VIEW, form_id, None)) in activity.activities
        assert activity.analytics == [(form_id, ActivityAction.VIEW, "viewer")]

    async def test_side_effect_failures_are_swallowed(
        self, store: FakeFirestore, clock: FakeClock
    ) -> None:
        tasks = BestEffortTasks()
        repo = FirestoreFormRepository(
            store, RecordingActivityLog(fail=True), tasks=tasks, clock=clock
        )
        form_id = await repo.create_form(make_form(), USER)
        store.fail("update", "forms")

        record = await repo.get_form(form_id, USER)
        await tasks.drain()

        assert record is not None
        assert store.data["forms"][form_id]["viewCount"] == 0

    async def test_read_failure_raises(self, repo, store: FakeFirestore) -> None:
        store.fail("get")
        with pytest.raises(PersistenceException):
            await repo.get_form("any")


class TestUpdateForm:
    """Tests for update_form."""

    async def test_empty_patch_only_touches_audit_fields(
        self, repo, store: FakeFirestore, clock: FakeClock
    ) -> None:
        form_id = await repo.create_form(make_form(), USER)
        before = dict(store.data["forms"][form_id])
        clock.advance(minutes=5)

        await repo.update_form(form_id, {}, "editor")

        after = store.data["forms"][form_id]
        assert after["updatedAt"] == clock.now
        assert after["modifiedBy"] == "editor"
        assert after["searchKeywords"] == before["searchKeywords"]
        untouched = set(before) - {"updatedAt", "modifiedBy", "lastModified"}
        assert {k: after[k] for k in untouched} == {k: before[k] for k in untouched}

    async def test_title_change_recomputes_keywords(self, repo, store: FakeFirestore) -> None:
        form_id = await repo.create_form(make_form(title="Old Name"), USER)
        await repo.update_form(form_id, {"title": "Brand New"}, USER)

        keywords = set(store.data["forms"][form_id]["searchKeywords"])
        assert {"brand", "new"} <= keywords
        assert "old" not in keywords
        assert "cgl-001-ca" in keywords

    async def test_missing_form_raises_not_found(self, repo) -> None:
        with pytest.raises(FormNotFoundException):
            await repo.update_form("missing", {"title": "x"}, USER)

    async def test_deleted_form_raises_not_found(self, repo) -> None:
        form_id = await repo.create_form(make_form(), USER)
        await repo.delete_form(form_id, USER)
        with pytest.raises(FormNotFoundException):
            await repo.update_form(form_id, {"title": "x"}, USER)


class TestDeleteForm:
    """Tests for soft delete."""

    async def test_soft_delete_hides_but_keeps_record(
        self, repo, store: FakeFirestore, clock: FakeClock
    ) -> None:
        form_id = await repo.create_form(make_form(), USER)
        await repo.delete_form(form_id, "remover")

        assert await repo.get_form(form_id) is None
        page = await repo.list_forms(FormFilter())
        assert form_id not in [r.id for r in page.records]
        stored = store.data["forms"][form_id]
        assert stored["isDeleted"] is True
        assert stored["deletedBy"] == "remover"
        assert stored["deletedAt"] == clock.now

    async def test_second_delete_raises_not_found(self, repo) -> None:
        form_id = await repo.create_form(make_form(), USER)
        await repo.delete_form(form_id, USER)
        with pytest.raises(FormNotFoundException):
            await repo.delete_form(form_id, USER)


class TestGetStats:
    """Tests for get_stats."""

    async def test_counts_active_inactive_and_recent(self, repo, clock: FakeClock) -> None:
        now = clock.now
        clock.advance(days=-40)
        await repo.create_form(make_form(category=FormCategory.POLICY, state_applicability=("TX",)), USER)
        clock.now = now
        await repo.create_form(make_form(), USER)
        await repo.create_form(make_form(), USER)
        await repo.create_form(make_form(is_active=False), USER)
        await repo.create_form(make_form(is_active=False), USER)
        deleted = await repo.create_form(make_form(), USER)
        await repo.delete_form(deleted, USER)

        stats = await repo.get_stats()

        assert stats.total_forms == 5
        assert stats.active_forms == 3
        assert stats.inactive_forms == 2
        assert stats.recent_uploads == 4
        assert stats.counts_by_category == {"Policy": 1, "Application": 4}
        assert stats.counts_by_state == {"TX": 1, "CA": 4, "NV": 4}


class TestRecordDownload:
    """Tests for record_download."""

    async def test_returns_url_and_counts(
        self,
        repo,
        store: FakeFirestore,
        activity: RecordingActivityLog,
        tasks: BestEffortTasks,
    ) -> None:
        form_id = await repo.create_form(make_form(), USER)
        await repo.update_form(form_id, {"file_url": "https://files/x.pdf", "file_size": 10}, USER)

        url = await repo.record_download(form_id, "reader")
        await tasks.drain()

        assert url == "https://files/x.pdf"
        assert store.data["forms"][form_id]["downloadCount"] == 1
        assert activity.analytics == [(form_id, ActivityAction.DOWNLOAD, "reader")]

    async def test_form_without_file_is_not_found(self, repo) -> None:
        form_id = await repo.create_form(make_form(), USER)
        with pytest.raises(FormNotFoundException):
            await repo.record_download(form_id, USER)
