"""Directory record types shared by the client, cache and views."""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping

# Wire keys of a user representation, besides the immutable "id".
EDITABLE_FIELDS = ("first_name", "last_name", "email", "avatar")


@dataclass(frozen=True)
class UserRecord:
    """A single user of the remote directory.

    ``id`` never changes once the remote system created the record; the other
    fields are replaced wholesale through ``dataclasses.replace``.
    """
    id: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    avatar: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "UserRecord":
        """Build a record from the API representation.

        Raises:
            ValueError: If ``id`` is missing or not an integer
        """
        raw_id = payload.get("id")
        if isinstance(raw_id, bool):
            raise ValueError(f"Invalid user id: {raw_id!r}")
        try:
            user_id = int(raw_id)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid user id: {raw_id!r}") from None
        return cls(
            id=user_id,
            first_name=payload.get("first_name") or "",
            last_name=payload.get("last_name") or "",
            email=payload.get("email") or "",
            avatar=payload.get("avatar") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UserPage:
    """One page of ``GET /users?page=N``."""
    page: int
    total_pages: int
    records: List[UserRecord] = field(default_factory=list)
