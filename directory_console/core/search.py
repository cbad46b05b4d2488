"""Live search over the cached users."""
from __future__ import annotations
from typing import Iterable, List

from .models import UserRecord

SEARCH_FIELDS = ("first_name", "last_name", "email")


def normalize_query(query: str) -> str:
    """Case-fold the query. Whitespace is significant: "smith " does not match a trailing "Smith"."""
    return (query or "").casefold()


def matches(record: UserRecord, query: str) -> bool:
    """True when the query occurs in the first name, last name or email (case-insensitive)."""
    needle = normalize_query(query)
    if not needle:
        return True
    return any(needle in (getattr(record, name) or "").casefold() for name in SEARCH_FIELDS)


def filter_records(records: Iterable[UserRecord], query: str) -> List[UserRecord]:
    """Return the records matching ``query``, in their original order."""
    return [record for record in records if matches(record, query)]
