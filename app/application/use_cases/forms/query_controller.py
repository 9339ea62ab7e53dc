"""Caller-owned state for a searchable, paginated forms list.

Each reload (new search text, new filter, refresh) starts a new
generation; results that arrive for an older generation are dropped, so
a slow response can never overwrite a newer one.
"""

from __future__ import annotations

import asyncio

from app.application.dtos.form import FormFilter, FormRecord
from app.application.interfaces.repositories import IFormRepository
from app.domain.exceptions import FormsException
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class FormsQueryController:
    """Holds search text, filter, cursor and the merged record list.

    Non-blank search text (or filter.query) uses keyword search, which has
    no pagination: has_more is False and no cursor is kept.
    """

    def __init__(
        self,
        repository: IFormRepository,
        *,
        page_size: int = 20,
        initial_filter: FormFilter | None = None,
        debounce_seconds: float = 0.0,
        user_id: str | None = None,
    ) -> None:
        self._repository = repository
        self.page_size = page_size
        self.debounce_seconds = debounce_seconds
        self.user_id = user_id
        self.records: list[FormRecord] = []
        self.loading = False
        self.error: str | None = None
        self.has_more = False
        self.search_text = ""
        self.filter = initial_filter or FormFilter()
        self._cursor: str | None = None
        self._generation = 0

    @property
    def cursor(self) -> str | None:
        return self._cursor

    def _text(self) -> str:
        return self.search_text.strip() or (self.filter.query or "").strip()

    def _start_generation(self) -> int:
        # Pages of the previous query must not be appended to the next one.
        self._generation += 1
        self._cursor = None
        self.has_more = False
        return self._generation

    async def set_search_text(self, text: str) -> None:
        """Reset the cursor and reload; keystrokes inside the debounce window are skipped."""
        self.search_text = text
        generation = self._start_generation()
        self.loading = True
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
            if generation != self._generation:
                return
        await self._load(generation, reset=True)

    async def set_filter(self, form_filter: FormFilter) -> None:
        self.filter = form_filter
        await self._load(self._start_generation(), reset=True)

    async def refresh(self) -> None:
        """Replace records with the first page for the current text and filter."""
        await self._load(self._start_generation(), reset=True)

    async def load_more(self) -> None:
        """Append the next page. No-op while loading or when nothing more is expected."""
        if self.loading or not self.has_more:
            return
        await self._load(self._generation, reset=False)

    async def _load(self, generation: int, *, reset: bool) -> None:
        self.loading = True
        self.error = None
        try:
            text = self._text()
            if text:
                records = await self._repository.search_forms(
                    text,
                    self.filter,
                    user_id=self.user_id,
                    page_size=self.page_size,
                )
                cursor, has_more = None, False
            else:
                page = await self._repository.list_forms(
                    self.filter,
                    self.page_size,
                    None if reset else self._cursor,
                )
                records, cursor, has_more = page.records, page.next_cursor, page.has_more
        except FormsException as e:
            if generation == self._generation:
                logger.warning("Forms query failed: %s", e.message)
                self.error = e.message
            return
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            logger.debug("Dropping superseded forms result (generation %d)", generation)
            return
        self.records = records if reset else [*self.records, *records]
        self._cursor = cursor
        self.has_more = has_more
