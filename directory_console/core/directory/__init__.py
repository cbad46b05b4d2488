"""Remote user directory client library.

Architecture:
- client.py: HTTP client with bearer-token auth and error mapping
- tokens.py: In-memory token holder for the operator session
- exceptions.py: Typed exceptions for error handling

Usage:
    from directory_console.core.directory import DirectoryClient

    client = DirectoryClient("https://reqres.in/api")
    await client.login("eve.holt@reqres.in", "cityslicka")
    page = await client.fetch_page(1)
"""
from .client import (
    DirectoryClient,
    REQUEST_TIMEOUT,
    DEFAULT_BASE_URL,
)
from .exceptions import (
    DirectoryError,
    AuthError,
    NetworkError,
    DirectoryAPIError,
    RecordNotFoundError,
    MutationInProgressError,
    EditSessionClosedError,
)
from .tokens import TokenStore

__all__ = [
    # Client
    "DirectoryClient",
    "TokenStore",
    "REQUEST_TIMEOUT",
    "DEFAULT_BASE_URL",

    # Exceptions
    "DirectoryError",
    "AuthError",
    "NetworkError",
    "DirectoryAPIError",
    "RecordNotFoundError",
    "MutationInProgressError",
    "EditSessionClosedError",
]
