"""Directory-specific exceptions for error handling."""


class DirectoryError(Exception):
    """Base exception for all directory operations."""
    pass


class AuthError(DirectoryError):
    """The directory reported the caller as unauthenticated.

    Terminal for the session: the token must be dropped and the operator
    logged out. Never retried locally.
    """
    pass


class NetworkError(DirectoryError):
    """Transport failure (connection refused, timeout, reset).

    Transient; surfaced to the operator for a manual retry.
    """
    pass


class DirectoryAPIError(NetworkError):
    """Unexpected HTTP status or malformed body from the directory API.

    Attributes:
        status_code: HTTP status code (0 when the body could not be decoded)
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class RecordNotFoundError(DirectoryError):
    """User record does not exist (locally or remotely)."""

    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"User {user_id!r} not found")


class MutationInProgressError(DirectoryError):
    """Another update or delete for the same user is still in flight."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"A mutation for user {user_id} is already in progress")


class EditSessionClosedError(DirectoryError):
    """Edit submitted while no record is open for editing."""
    pass
