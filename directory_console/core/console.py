"""Operator-facing facade over the synchronization engine.

Wires one ``LocalCache`` to the loader, the mutation coordinator and the
edit-session synchronizer, holds the search query and page index, and
derives the visible page on every read. An ``AuthError`` from any
operation ends the session.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union

from .cache import BulkCacheLoader, LocalCache
from .directory.client import DirectoryClient
from .directory.exceptions import AuthError, EditSessionClosedError
from .edit_session import EditIdentifierChannel, EditSession, EditSessionSynchronizer
from .models import UserRecord
from .mutations import MergePolicy, MutationCoordinator
from .paginator import PAGE_SIZE, clamp_page, paginate, total_pages
from .search import filter_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsoleView:
    """Everything the list screen needs to render one frame."""
    displayed_records: Tuple[UserRecord, ...]
    total_pages: int
    current_page: int
    edit_session: EditSession
    result_count: int
    query: str = ""


class UserConsole:
    """Browse, search, edit and delete directory users for one operator session."""

    def __init__(
        self,
        client: DirectoryClient,
        *,
        page_size: int = PAGE_SIZE,
        merge_policy: MergePolicy = MergePolicy.CLIENT,
        channel: Optional[EditIdentifierChannel] = None,
        on_logout: Optional[Callable[[], None]] = None,
    ):
        total_pages(0, page_size)  # validates page_size
        self.client = client
        self.page_size = page_size
        self.cache = LocalCache()
        self.loader = BulkCacheLoader(client, self.cache)
        self.mutations = MutationCoordinator(client, self.cache, merge_policy)
        self.edits = EditSessionSynchronizer(self.cache, channel)
        self._on_logout = on_logout
        self._query = ""
        self._page = 1
        # bumped on login and logout so late failures from an ended session are ignored
        self._session_epoch = 0
        self.logged_in = client.tokens.is_authenticated

    @property
    def query(self) -> str:
        return self._query

    def filtered(self) -> List[UserRecord]:
        return filter_records(self.cache.records, self._query)

    @property
    def view(self) -> ConsoleView:
        matching = self.filtered()
        pages = total_pages(len(matching), self.page_size)
        self._page = clamp_page(self._page, pages)
        return ConsoleView(
            displayed_records=tuple(paginate(matching, self.page_size, self._page)),
            total_pages=pages,
            current_page=self._page,
            edit_session=self.edits.session,
            result_count=len(matching),
            query=self._query,
        )

    async def login(self, email: str, password: str) -> None:
        await self.client.login(email, password)
        self._session_epoch += 1
        self.logged_in = True

    async def load(self) -> ConsoleView:
        with self._session_guard():
            await self.loader.load()
        return self.view

    def set_search_query(self, query: str) -> None:
        """Filter by ``query``; a changed query returns to the first page."""
        query = query or ""
        if query != self._query:
            self._query = query
            self._page = 1

    def set_page(self, page: int) -> None:
        """Move to ``page``, clamped into the current page range."""
        self._page = clamp_page(int(page), total_pages(len(self.filtered()), self.page_size))

    def begin_edit(self, target: Union[UserRecord, int]) -> UserRecord:
        return self.edits.begin_edit(target)

    def cancel_edit(self) -> None:
        self.edits.cancel()

    async def submit_edit(self, fields: Mapping[str, Any]) -> UserRecord:
        """Save the open record; the session closes on success and stays open on failure.

        Raises:
            EditSessionClosedError: If no record is open for editing
        """
        session = self.edits.session
        if not session.is_open:
            raise EditSessionClosedError("No user is open for editing")
        with self._session_guard():
            return await self.mutations.apply_update(session.record.id, fields)

    async def request_delete(self, user_id: int) -> UserRecord:
        with self._session_guard():
            return await self.mutations.apply_delete(user_id)

    def logout(self) -> None:
        """End the session: drop the token, discard in-flight loads, close the editor."""
        self.client.tokens.clear()
        self.loader.invalidate()
        self.cache.forget_local_edits()
        self.edits.close()
        self._session_epoch += 1
        was_logged_in, self.logged_in = self.logged_in, False
        if was_logged_in:
            logger.info("Operator session ended")
        if self._on_logout is not None:
            self._on_logout()

    @contextmanager
    def _session_guard(self):
        epoch = self._session_epoch
        try:
            yield
        except AuthError:
            if epoch == self._session_epoch:
                self.logout()
            raise
