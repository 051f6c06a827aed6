# marks/core/mutation_submitter.py
# Bridges user intent to the gateway and drives the store's optimistic/rollback steps

from __future__ import annotations

from dataclasses import dataclass

from opentelemetry import trace

from marks.core.gateway import BookmarkGateway
from marks.core.reconciliation_store import ReconciliationStore
from marks.core.validation import normalize_url, validate_title
from marks.errors import AppError, ServiceError, ValidationError
from marks.schemas.bookmark import Bookmark
from marks.utils.logger import log_exception, log_info


@dataclass(frozen=True)
class MutationResult:
    """Outcome handed to the presentation layer; errors never propagate past the submitter."""
    ok: bool
    bookmark: Bookmark | None = None
    error: AppError | None = None

    @property
    def message(self) -> str:
        if self.error is None:
            return ""
        if isinstance(self.error, ValidationError):
            return self.error.message
        return f"Error: {self.error.message}"


class MutationSubmitter:
    """Issues create/delete requests; no retries."""

    def __init__(self, gateway: BookmarkGateway, store: ReconciliationStore):
        self._gateway = gateway
        self._store = store
        self._tracer = trace.get_tracer(__name__)

    async def create(self, url: str, title: str, owner_id: str) -> MutationResult:
        """
        Validate and submit a new bookmark.

        Validation failures return before any gateway call or store change.
        The store is not touched here: the caller applies the confirmed
        record with ``apply_local_create`` once this resolves.
        """
        try:
            clean_title = validate_title(title)
            clean_url = normalize_url(url)
        except ValidationError as e:
            log_info(f"MutationSubmitter.create: rejected input - {e.message}")
            return MutationResult(ok=False, error=e)

        with self._tracer.start_as_current_span("bookmarks.create") as span:
            span.set_attribute("bookmark.owner_id", owner_id)
            try:
                bookmark = await self._gateway.create(owner_id, clean_url, clean_title)
            except ServiceError as e:
                log_exception(e, "MutationSubmitter.create")
                return MutationResult(ok=False, error=e)
            span.set_attribute("bookmark.id", bookmark.id)

        log_info(f"MutationSubmitter.create: created id={bookmark.id} owner={owner_id}")
        return MutationResult(ok=True, bookmark=bookmark)

    async def delete(self, bookmark_id: str, owner_id: str) -> MutationResult:
        """
        Remove locally first, then ask the gateway to delete ``(id, owner)``.

        On failure the row is restored via ``rollback_delete`` (which also
        re-syncs from the gateway). On success the feed echo, if it ever
        arrives, is suppressed by the store.
        """
        removed = self._store.apply_local_delete(bookmark_id)

        with self._tracer.start_as_current_span("bookmarks.delete") as span:
            span.set_attribute("bookmark.id", bookmark_id)
            span.set_attribute("bookmark.owner_id", owner_id)
            try:
                await self._gateway.delete(bookmark_id, owner_id)
            except ServiceError as e:
                log_exception(e, f"MutationSubmitter.delete id={bookmark_id}")
                await self._recover_failed_delete(bookmark_id, removed)
                return MutationResult(ok=False, bookmark=removed, error=e)

        self._store.settle_delete(bookmark_id)
        log_info(f"MutationSubmitter.delete: deleted id={bookmark_id} owner={owner_id}")
        return MutationResult(ok=True, bookmark=removed)

    async def _recover_failed_delete(self, bookmark_id: str, removed: Bookmark | None) -> None:
        if removed is not None:
            await self._store.rollback_delete(removed)
            return
        # nothing was visible locally, so there is nothing to put back
        try:
            await self._store.resync()
        finally:
            self._store.settle_delete(bookmark_id)
