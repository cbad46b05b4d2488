"""Edit-session state and its link to an external identifier (URL segment).

The synchronizer is the only place that translates between "user N is open
for editing" and the identifier the routing layer shows, e.g.
``/users/7/edit``. The routing side reports identifiers with ``observe()``;
the synchronizer answers with ``emit()``.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from .cache import CACHE_LOADED, RECORD_DELETED, RECORD_UPDATED, CacheEvent, LocalCache
from .directory.exceptions import RecordNotFoundError
from .models import UserRecord

logger = logging.getLogger(__name__)

IdentifierListener = Callable[[Optional[str]], None]


class SessionStatus(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass(frozen=True)
class EditSession:
    status: SessionStatus = SessionStatus.CLOSED
    record: Optional[UserRecord] = None

    @property
    def is_open(self) -> bool:
        return self.status is SessionStatus.OPEN


CLOSED = EditSession()


class EditIdentifierChannel:
    """Two-way channel carrying the identifier of the record open for edit.

    ``observe`` is called by the routing layer when the location changes and
    is forwarded to the bound synchronizer. ``emit`` is called by the
    synchronizer and forwarded to navigation subscribers only.
    """

    def __init__(self, value: Optional[str] = None):
        self._value = _as_identifier(value)
        self._handler: Optional[IdentifierListener] = None
        self._subscribers: List[IdentifierListener] = []

    @property
    def value(self) -> Optional[str]:
        return self._value

    def bind(self, handler: IdentifierListener) -> None:
        self._handler = handler

    def subscribe(self, listener: IdentifierListener) -> None:
        self._subscribers.append(listener)

    def observe(self, identifier) -> None:
        self._value = _as_identifier(identifier)
        if self._handler is not None:
            self._handler(self._value)

    def emit(self, identifier) -> None:
        identifier = _as_identifier(identifier)
        if identifier == self._value:
            return
        self._value = identifier
        for listener in list(self._subscribers):
            listener(identifier)


def _as_identifier(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_identifier(identifier: Optional[str]) -> Optional[int]:
    """Integer user id for an identifier, or None if it cannot name a user."""
    if identifier is None:
        return None
    try:
        return int(identifier)
    except ValueError:
        return None


class EditSessionSynchronizer:
    """State machine ``Closed`` / ``Open(record)`` kept in step with the channel."""

    def __init__(self, cache: LocalCache, channel: Optional[EditIdentifierChannel] = None):
        self.cache = cache
        self.channel = channel or EditIdentifierChannel()
        self._session = CLOSED
        self._pending: Optional[str] = None
        self.channel.bind(self._on_identifier)
        cache.subscribe(self._on_cache_event)
        if self.channel.value is not None:
            self._on_identifier(self.channel.value)

    @property
    def session(self) -> EditSession:
        return self._session

    @property
    def pending_identifier(self) -> Optional[str]:
        """Identifier received before the first load settled."""
        return self._pending

    def begin_edit(self, target: Union[UserRecord, int]) -> UserRecord:
        """Open a cached record for editing, replacing any open one.

        Raises:
            RecordNotFoundError: If the record is not in the cache
        """
        user_id = target.id if isinstance(target, UserRecord) else target
        record = self.cache.get(user_id)
        if record is None:
            raise RecordNotFoundError(user_id)
        self._open(record)
        self.channel.emit(str(record.id))
        return record

    def cancel(self) -> None:
        self.close()

    def close(self) -> None:
        """Close the session (if any) and clear the channel."""
        self._pending = None
        if self._session.is_open:
            logger.debug("Closing edit session for user %s", self._session.record.id)
        self._session = CLOSED
        self.channel.emit(None)

    def _open(self, record: UserRecord) -> None:
        self._pending = None
        self._session = EditSession(SessionStatus.OPEN, record)

    def _on_identifier(self, identifier: Optional[str]) -> None:
        if identifier is None:
            self._pending = None
            self._session = CLOSED
            return
        if not self.cache.loaded:
            self._pending = identifier
            return
        self._resolve(identifier)

    def _resolve(self, identifier: str) -> None:
        user_id = parse_identifier(identifier)
        record = self.cache.get(user_id) if user_id is not None else None
        if record is None:
            logger.info("Edit link %r does not match a cached user; returning to list", identifier)
            self.close()
            return
        self._open(record)

    def _on_cache_event(self, event: CacheEvent) -> None:
        if event.kind == CACHE_LOADED:
            if self._pending is not None:
                self._resolve(self._pending)
            elif self._session.is_open:
                self._resolve(str(self._session.record.id))
            return
        if not self._session.is_open or event.user_id != self._session.record.id:
            return
        if event.kind in (RECORD_UPDATED, RECORD_DELETED):
            self.close()
