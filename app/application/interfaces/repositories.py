"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

from app.domain.enums import ActivityAction

if TYPE_CHECKING:
    from app.application.dtos.form import (
        FormCreate,
        FormFilter,
        FormPage,
        FormRecord,
        FormStats,
    )

FormsCallback = Callable[[list["FormRecord"]], Awaitable[None] | None]
Unsubscribe = Callable[[], Awaitable[None]]


class IFormSubscription(Protocol):
    """Live view of the forms matching a filter; async-iterates full snapshots."""

    def __aiter__(self) -> IFormSubscription: ...

    async def __anext__(self) -> list[FormRecord]: ...

    async def close(self) -> None:
        """Stop delivering snapshots. Idempotent."""


class IFormRepository(Protocol):
    """Protocol for the forms repository (DIP)."""

    async def create_form(self, data: FormCreate, user_id: str) -> str:
        """Persist a new form and return its id."""

    async def list_forms(
        self,
        form_filter: FormFilter | None = None,
        page_size: int = 20,
        cursor: str | None = None,
    ) -> FormPage:
        """Return one page of non-deleted forms, newest first."""

    async def search_forms(
        self,
        text: str,
        form_filter: FormFilter | None = None,
        *,
        user_id: str | None = None,
        page_size: int = 20,
    ) -> list[FormRecord]:
        """Keyword search (any token matches), newest first."""

    async def get_form(self, form_id: str, user_id: str | None = None) -> FormRecord | None:
        """Return a live form or None for missing/soft-deleted."""

    async def update_form(self, form_id: str, changes: Mapping[str, Any], user_id: str) -> None:
        """Merge changes into a live form."""

    async def delete_form(self, form_id: str, user_id: str) -> None:
        """Soft delete a live form."""

    async def get_stats(self) -> FormStats:
        """Aggregate counts over all non-deleted forms."""

    async def record_download(self, form_id: str, user_id: str) -> str:
        """Return the form's file URL and count the download."""

    def watch_forms(self, form_filter: FormFilter | None = None) -> IFormSubscription:
        """Open a subscription delivering the matching set on every change."""

    async def subscribe_to_forms(
        self, form_filter: FormFilter | None, on_update: FormsCallback
    ) -> Unsubscribe:
        """Callback form of watch_forms; returns an unsubscribe coroutine function."""


class IActivityLog(Protocol):
    """Protocol for user activity and per-day form analytics."""

    async def log_activity(
        self,
        user_id: str,
        action: ActivityAction,
        form_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        """Append one activity entry."""

    async def update_analytics(
        self, form_id: str, action: ActivityAction, user_id: str
    ) -> None:
        """Bump the per-day counter for action and add user to uniqueUsers."""
