"""Write-through update and delete of cached users.

Each mutation goes to the directory first; the local cache is changed only
after the directory accepted it, and never re-fetched afterwards. The merged
record is authoritative for the rest of the session.
"""
from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, Mapping, Set
from urllib.parse import quote

from .cache import LocalCache
from .directory.client import DirectoryClient
from .directory.exceptions import MutationInProgressError, RecordNotFoundError
from .models import EDITABLE_FIELDS, UserRecord

DEFAULT_AVATAR = "https://ui-avatars.com/api/?name="

logger = logging.getLogger(__name__)


class MergePolicy(str, Enum):
    """Which side wins when the update response and the sent fields disagree.

    CLIENT suits mock directories that echo stale values for fields they do
    not persist; SERVER suits a directory that stores writes faithfully.
    """
    CLIENT = "client"
    SERVER = "server"


def default_avatar(full_name: str) -> str:
    return f"{DEFAULT_AVATAR}{quote(full_name, safe='')}&background=random"


def merge_update(
    cached: UserRecord,
    canonical: Mapping[str, Any],
    sent: Mapping[str, Any],
    policy: MergePolicy = MergePolicy.CLIENT,
) -> UserRecord:
    """Combine the cached record, the server's response and the sent fields.

    Fields absent from both the response and the sent fields keep their
    cached value. A blank avatar is replaced by a generated one.
    """
    server = {k: v for k, v in canonical.items() if k in EDITABLE_FIELDS and v is not None}
    if MergePolicy(policy) is MergePolicy.CLIENT:
        changes = {**server, **sent}
    else:
        changes = {**sent, **server}
    merged = replace(cached, **changes)
    if not merged.avatar:
        merged = replace(merged, avatar=default_avatar(merged.full_name))
    return merged


def clean_fields(user_id: int, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate an edit payload and drop unset (None) values.

    Raises:
        ValueError: On unknown field names or an attempt to change the id
    """
    cleaned: Dict[str, Any] = {}
    for key, value in fields.items():
        if key == "id":
            if value is not None and value != user_id:
                raise ValueError("User id cannot be changed")
            continue
        if key not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown user field: {key}")
        if value is not None:
            cleaned[key] = value
    return cleaned


class MutationCoordinator:
    """Applies update/delete through the directory, then to the cache."""

    def __init__(
        self,
        client: DirectoryClient,
        cache: LocalCache,
        merge_policy: MergePolicy = MergePolicy.CLIENT,
    ):
        self.client = client
        self.cache = cache
        self.merge_policy = MergePolicy(merge_policy)
        self._pending: Set[int] = set()

    def is_pending(self, user_id: int) -> bool:
        return user_id in self._pending

    @contextmanager
    def _exclusive(self, user_id: int):
        if user_id not in self.cache:
            raise RecordNotFoundError(user_id)
        if user_id in self._pending:
            raise MutationInProgressError(user_id)
        self._pending.add(user_id)
        try:
            yield
        finally:
            self._pending.discard(user_id)

    async def apply_update(self, user_id: int, fields: Mapping[str, Any]) -> UserRecord:
        """Update one user and write the merged record into the cache.

        Raises:
            ValueError: On an invalid edit payload
            RecordNotFoundError: If the user is not cached (no request is sent)
            MutationInProgressError: If the user already has a mutation in flight
            AuthError, NetworkError: From the directory; the cache is unchanged
        """
        sent = clean_fields(user_id, fields)
        with self._exclusive(user_id):
            canonical = await self.client.update_record(user_id, sent)
            cached = self.cache.get(user_id)
            if cached is None:
                raise RecordNotFoundError(user_id)
            merged = merge_update(cached, canonical, sent, self.merge_policy)
            self.cache.put(merged)
        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(sent)) or "no fields")
        return merged

    async def apply_delete(self, user_id: int) -> UserRecord:
        """Delete one user and drop it from the cache.

        Raises:
            RecordNotFoundError: If the user is not cached (no request is sent)
            MutationInProgressError: If the user already has a mutation in flight
            AuthError, NetworkError: From the directory; the cache is unchanged
        """
        with self._exclusive(user_id):
            await self.client.delete_record(user_id)
            removed = self.cache.remove(user_id)
        logger.info("Deleted user %s", user_id)
        return removed
