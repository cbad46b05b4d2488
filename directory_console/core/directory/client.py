"""Low-level HTTP client for the remote user directory.

Handles authentication headers, error mapping and the three user operations
the console needs (paged fetch, update, delete). Calls are made with
``requests`` on a worker thread so that each one is an awaitable suspension
point; no directory state is kept here besides the token holder.
"""
from __future__ import annotations
import asyncio
import logging
import os
from typing import Any, Dict, Mapping, Optional

import requests

from ..models import EDITABLE_FIELDS, UserPage, UserRecord
from .exceptions import (
    AuthError,
    DirectoryAPIError,
    NetworkError,
    RecordNotFoundError,
)
from .tokens import TokenStore

REQUEST_TIMEOUT = 10
DEFAULT_BASE_URL = "https://reqres.in/api"

logger = logging.getLogger(__name__)


class DirectoryClient:
    """HTTP client for the user directory API.

    Usage:
        client = DirectoryClient("https://reqres.in/api")
        await client.login("eve.holt@reqres.in", "cityslicka")
        page = await client.fetch_page(1)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_store: Optional[TokenStore] = None,
        timeout: float = REQUEST_TIMEOUT,
        api_key: Optional[str] = None,
    ):
        """Initialize directory client.

        Args:
            base_url: API base URL (defaults to DIRECTORY_API_URL env var)
            token_store: Holder of the bearer token (a fresh, empty one if omitted)
            timeout: Per-request timeout in seconds
            api_key: Optional value for the ``x-api-key`` header
        """
        self.base_url = (base_url or os.environ.get("DIRECTORY_API_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.tokens = token_store if token_store is not None else TokenStore()
        self.timeout = timeout
        self._api_key = api_key

    async def login(self, email: str, password: str) -> str:
        """Exchange credentials for a bearer token and remember it.

        Raises:
            AuthError: If the directory rejects the credentials
            NetworkError: On transport failure
        """
        url = f"{self.base_url}/login"
        resp = await self._send(
            requests.post, url, json={"email": email, "password": password}, headers=self._base_headers()
        )
        if resp.status_code in (400, 401):
            raise AuthError(f"Login rejected for {email}")
        self._handle_error(resp)
        token = self._decode(resp).get("token")
        if not token:
            raise DirectoryAPIError(resp.status_code, "Login response carried no token", url)
        self.tokens.set(token)
        logger.info("Authenticated against %s as %s", self.base_url, email)
        return token

    async def fetch_page(self, page: int) -> UserPage:
        """Fetch one page of the remote user collection.

        Args:
            page: 1-based page number

        Returns:
            The page records in server order plus the server's page count

        Raises:
            ValueError: If page is not a positive integer
            AuthError: On HTTP 401 or missing token
            NetworkError: On transport failure or unexpected response
        """
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValueError(f"Page number must be a positive integer, got {page!r}")
        resp = await self.get("/users", params={"page": page})
        body = self._decode(resp)
        try:
            records = [UserRecord.from_api(item) for item in body.get("data") or []]
            total_pages = max(1, int(body.get("total_pages") or 1))
        except (TypeError, ValueError, AttributeError) as exc:
            raise DirectoryAPIError(resp.status_code, f"Malformed users page: {exc}", resp.url) from exc
        logger.debug("Fetched page %d/%d (%d records)", page, total_pages, len(records))
        return UserPage(page=page, total_pages=total_pages, records=records)

    async def update_record(self, user_id: int, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Send a partial update for one user.

        Returns:
            The server's canonical view of the user, limited to the user fields
            the response actually carried. Mock backends echo only what they
            were sent, so callers merge this over their cached record.

        Raises:
            AuthError: On HTTP 401 or missing token
            RecordNotFoundError: On HTTP 404
            NetworkError: On transport failure or unexpected response
        """
        resp = await self.put(f"/users/{user_id}", json=dict(fields))
        body = self._decode(resp)
        return {key: body[key] for key in EDITABLE_FIELDS if body.get(key) is not None}

    async def delete_record(self, user_id: int) -> None:
        """Delete one user (``204 No Content`` on success)."""
        await self.delete(f"/users/{user_id}")

    async def get(self, path: str, params: Optional[Dict] = None) -> requests.Response:
        """Execute GET request with the bearer token."""
        return await self._authorized(requests.get, path, params=params)

    async def put(self, path: str, json: Optional[Dict] = None) -> requests.Response:
        """Execute PUT request with the bearer token."""
        return await self._authorized(requests.put, path, json=json)

    async def delete(self, path: str) -> requests.Response:
        """Execute DELETE request with the bearer token."""
        return await self._authorized(requests.delete, path)

    async def _authorized(self, method, path: str, **kwargs) -> requests.Response:
        token = self.tokens.token
        if not token:
            raise AuthError("Not authenticated - call login() first")
        headers = self._base_headers()
        headers["Authorization"] = f"Bearer {token}"
        resp = await self._send(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        self._handle_error(resp)
        return resp

    def _base_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    async def _send(self, method, url: str, **kwargs) -> requests.Response:
        """Run a blocking ``requests`` call off the event loop thread.

        Raises:
            NetworkError: On timeout, connection or other transport failure
        """
        try:
            return await asyncio.to_thread(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise NetworkError(f"Timed out after {self.timeout}s: {url}") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"Request failed: {url}: {exc}") from exc

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            AuthError: On 401
            RecordNotFoundError: On 404 for a user resource
            DirectoryAPIError: On any other status >= 400
        """
        if resp.status_code == 401:
            raise AuthError(f"Unauthenticated: {resp.url}")
        if resp.status_code == 404:
            raise RecordNotFoundError(resp.url.rstrip("/").rsplit("/", 1)[-1])
        if resp.status_code >= 400:
            raise DirectoryAPIError(resp.status_code, resp.text, resp.url)

    @staticmethod
    def _decode(resp: requests.Response) -> Dict[str, Any]:
        try:
            body = resp.json()
        except ValueError as exc:
            raise DirectoryAPIError(resp.status_code, "Response body is not JSON", resp.url) from exc
        if not isinstance(body, dict):
            raise DirectoryAPIError(resp.status_code, "Response body is not a JSON object", resp.url)
        return body
