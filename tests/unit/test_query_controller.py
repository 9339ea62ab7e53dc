"""Tests for FormsQueryController (paging, search, stale-result handling)."""

import asyncio

import pytest

from app.application.dtos.form import FormFilter, FormPage
from app.application.use_cases.forms import FormsQueryController
from app.domain.enums import FormCategory
from tests.fakes import TEST_USER_ID, make_form


async def _seed(repo, clock, count: int, **overrides) -> list[str]:
    ids = []
    for i in range(count):
        data = make_form(form_number=f"F-{i:03d}", **overrides)
        ids.append(await repo.create_form(data, TEST_USER_ID))
        clock.advance(seconds=1)
    return ids


class _GatedRepository:
    """list_forms waits on a per-call gate; search_forms returns immediately."""

    def __init__(self) -> None:
        self.gates: list[asyncio.Event] = []
        self.searches: list[str] = []

    async def list_forms(self, form_filter=None, page_size=20, cursor=None) -> FormPage:
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return FormPage(records=["stale"], next_cursor="c1", has_more=True)

    async def search_forms(self, text, form_filter=None, *, user_id=None, page_size=20):
        self.searches.append(text)
        return [f"hit:{text}"]


async def test_refresh_then_load_more_until_exhausted(repo, clock) -> None:
    ids = await _seed(repo, clock, 25)
    controller = FormsQueryController(repo, page_size=20)

    await controller.refresh()
    assert len(controller.records) == 20
    assert controller.has_more is True
    assert controller.cursor is not None

    await controller.load_more()
    assert [r.id for r in controller.records] == list(reversed(ids))
    assert controller.has_more is False

    await controller.load_more()
    assert len(controller.records) == 25
    assert controller.loading is False


async def test_search_text_switches_to_keyword_search(repo, clock) -> None:
    await _seed(repo, clock, 2)
    homeowners = make_form(title="Homeowners Policy Jacket", form_number="HO-3")
    await repo.create_form(homeowners, TEST_USER_ID)
    controller = FormsQueryController(repo, page_size=20, user_id=TEST_USER_ID)

    await controller.set_search_text("homeowners")

    assert [r.form_number for r in controller.records] == ["HO-3"]
    assert controller.has_more is False
    assert controller.cursor is None

    await controller.set_search_text("   ")
    assert len(controller.records) == 3


async def test_set_filter_resets_records(repo, clock) -> None:
    await _seed(repo, clock, 3)
    await _seed(repo, clock, 2, category=FormCategory.POLICY)
    controller = FormsQueryController(repo)
    await controller.refresh()
    assert len(controller.records) == 5

    await controller.set_filter(FormFilter(category=FormCategory.POLICY))

    assert len(controller.records) == 2
    assert {r.category for r in controller.records} == {FormCategory.POLICY}


async def test_superseded_result_is_dropped() -> None:
    backend = _GatedRepository()
    controller = FormsQueryController(backend)

    slow = asyncio.create_task(controller.refresh())
    await asyncio.sleep(0)
    await controller.set_search_text("auto")
    assert controller.records == ["hit:auto"]

    backend.gates[0].set()
    await slow

    assert controller.records == ["hit:auto"]
    assert controller.has_more is False
    assert controller.loading is False


async def test_debounce_skips_superseded_keystrokes() -> None:
    backend = _GatedRepository()
    controller = FormsQueryController(backend, debounce_seconds=0.01)

    await asyncio.gather(
        controller.set_search_text("a"),
        controller.set_search_text("au"),
        controller.set_search_text("auto"),
    )

    assert backend.searches == ["auto"]
    assert controller.records == ["hit:auto"]


async def test_load_more_during_debounce_does_not_mix_queries(repo, clock) -> None:
    await _seed(repo, clock, 26)
    await repo.create_form(
        make_form(title="Homeowners Policy Jacket", form_number="HO-3"), TEST_USER_ID
    )
    controller = FormsQueryController(repo, page_size=20, debounce_seconds=0.05)
    await controller.refresh()
    assert controller.has_more is True

    pending = asyncio.create_task(controller.set_search_text("homeowners"))
    await asyncio.sleep(0)
    await controller.load_more()
    assert len(controller.records) == 20

    await pending
    assert [r.form_number for r in controller.records] == ["HO-3"]
    assert controller.has_more is False


async def test_store_failure_sets_error_and_keeps_records(repo, store, clock) -> None:
    await _seed(repo, clock, 2)
    controller = FormsQueryController(repo)
    await controller.refresh()

    store.fail("stream")
    await controller.refresh()

    assert controller.error is not None
    assert len(controller.records) == 2
    assert controller.loading is False

    store.heal()
    await controller.refresh()
    assert controller.error is None


@pytest.mark.parametrize("text", ["", "  "])
async def test_blank_search_uses_listing(repo, clock, text) -> None:
    await _seed(repo, clock, 1)
    controller = FormsQueryController(repo)
    await controller.set_search_text(text)
    assert len(controller.records) == 1
