"""Local copy of the remote user collection and the bulk loader that fills it.

The cache is the single authoritative container for the session. Only the
loader (wholesale replacement) and the mutation coordinator (per-record
update/remove) write to it; everything else reads ``records`` and derives
views on demand. Local updates and deletes are remembered for the session
and re-applied over every later bulk load.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .directory.client import DirectoryClient
from .directory.exceptions import AuthError, RecordNotFoundError
from .models import UserPage, UserRecord

logger = logging.getLogger(__name__)

CACHE_LOADED = "load"
RECORD_UPDATED = "update"
RECORD_DELETED = "delete"


@dataclass(frozen=True)
class CacheEvent:
    kind: str
    user_id: Optional[int] = None


CacheListener = Callable[[CacheEvent], None]


class LocalCache:
    """Ordered collection of user records keyed by id."""

    def __init__(self, records: Iterable[UserRecord] = ()):
        self._records: Dict[int, UserRecord] = {}
        self._listeners: List[CacheListener] = []
        # id -> merged record, or None once deleted
        self._local_edits: Dict[int, Optional[UserRecord]] = {}
        self.loaded = False
        for record in records:
            self._records.setdefault(record.id, record)

    @property
    def records(self) -> Tuple[UserRecord, ...]:
        return tuple(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, user_id) -> bool:
        return user_id in self._records

    def get(self, user_id: int) -> Optional[UserRecord]:
        return self._records.get(user_id)

    def subscribe(self, listener: CacheListener) -> None:
        self._listeners.append(listener)

    def replace_all(self, records: Iterable[UserRecord]) -> None:
        """Swap in a freshly loaded collection, keeping the first of any duplicate ids.

        Records updated or deleted locally earlier in the session keep their
        local state; the remote copy of those ids is ignored.
        """
        fresh: Dict[int, UserRecord] = {}
        for record in records:
            if record.id in fresh:
                logger.warning("Duplicate user id %s in bulk load; keeping first occurrence", record.id)
                continue
            fresh[record.id] = record
        for user_id, edited in self._local_edits.items():
            if edited is None:
                fresh.pop(user_id, None)
            elif user_id in fresh:
                fresh[user_id] = edited
        self._records = fresh
        self.loaded = True
        self._notify(CacheEvent(CACHE_LOADED))

    def put(self, record: UserRecord) -> None:
        """Replace an existing record in place.

        Raises:
            RecordNotFoundError: If no record with that id is cached
        """
        if record.id not in self._records:
            raise RecordNotFoundError(record.id)
        self._records[record.id] = record
        self._local_edits[record.id] = record
        self._notify(CacheEvent(RECORD_UPDATED, record.id))

    def remove(self, user_id: int) -> UserRecord:
        """Drop one record and return it.

        Raises:
            RecordNotFoundError: If no record with that id is cached
        """
        try:
            record = self._records.pop(user_id)
        except KeyError:
            raise RecordNotFoundError(user_id) from None
        self._local_edits[user_id] = None
        self._notify(CacheEvent(RECORD_DELETED, user_id))
        return record

    def forget_local_edits(self) -> None:
        """Stop re-applying this session's updates and deletes to later loads."""
        self._local_edits.clear()

    def _notify(self, event: CacheEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


class BulkCacheLoader:
    """Pulls every remote page into a ``LocalCache``.

    Page 1 is fetched first to learn the page count, then the remaining pages
    are fetched concurrently and merged in page order. Concurrent ``load()``
    calls share a single in-flight load. A failed load leaves the cache
    untouched.
    """

    def __init__(self, client: DirectoryClient, cache: LocalCache):
        self.client = client
        self.cache = cache
        self._inflight: Optional[asyncio.Future] = None
        self._inflight_generation = 0
        self._generation = 0

    @property
    def in_flight(self) -> bool:
        """True while a load for the current session is running."""
        return (
            self._inflight is not None
            and not self._inflight.done()
            and self._inflight_generation == self._generation
        )

    def invalidate(self) -> None:
        """Mark any load still in flight as stale; its results will be discarded."""
        self._generation += 1

    async def load(self) -> LocalCache:
        """Load the full remote collection into the cache.

        Raises:
            AuthError: If any page fetch reports the session unauthenticated,
                or the session was invalidated while the load was running
            NetworkError: On transport failure of any page fetch
        """
        if not self.in_flight:
            # a load left over from an ended session is never joined
            self._inflight_generation = self._generation
            self._inflight = asyncio.ensure_future(self._run(self._generation))
        return await asyncio.shield(self._inflight)

    async def _run(self, generation: int) -> LocalCache:
        first = await self.client.fetch_page(1)
        self._check_current(generation)
        pages = [first]
        if first.total_pages > 1:
            tasks = [
                asyncio.ensure_future(self.client.fetch_page(number))
                for number in range(2, first.total_pages + 1)
            ]
            try:
                pages.extend(await asyncio.gather(*tasks))
            except BaseException:
                for task in tasks:
                    task.cancel()
                raise
            self._check_current(generation)

        records = self._merge(pages)
        self.cache.replace_all(records)
        logger.info("Loaded %d users from %d page(s)", len(self.cache), first.total_pages)
        return self.cache

    def _check_current(self, generation: int) -> None:
        if generation != self._generation:
            logger.info("Discarding stale directory load (session ended)")
            raise AuthError("Session ended while the directory was loading")

    @staticmethod
    def _merge(pages: List[UserPage]) -> List[UserRecord]:
        records: List[UserRecord] = []
        for page in sorted(pages, key=lambda p: p.page):
            records.extend(page.records)
        return records
