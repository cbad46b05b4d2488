"""In-memory holder for the directory bearer token."""
from __future__ import annotations
from typing import Optional


class TokenStore:
    """Keeps the bearer token for the lifetime of one operator session.

    Nothing is persisted; a new process starts logged out.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token or None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set(self, token: str) -> None:
        if not token:
            raise ValueError("Token must be a non-empty string")
        self._token = token

    def clear(self) -> None:
        self._token = None
