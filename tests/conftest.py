"""Pytest shared fixtures for the directory console tests."""
import asyncio
import json
import pathlib
import sys
from typing import Dict, List, Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from directory_console.core.directory import TokenStore
from directory_console.core.models import UserPage, UserRecord


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Fail loudly if a unit test reaches for the real directory.

    Tests that exercise the HTTP client install their own stubs on top.
    """
    def _refuse(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected network access in tests: {url}")

    for verb in ("get", "post", "put", "delete"):
        monkeypatch.setattr(requests, verb, _refuse)


class StubResponse:
    """Just enough of ``requests.Response`` for the directory client."""

    def __init__(self, payload=None, status_code: int = 200, url: str = "https://directory.test/api"):
        self._payload = payload
        self.status_code = status_code
        self.url = url
        self.text = "" if payload is None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


# ─────────────────────────────────────────────────────────────────────────────
# Directory fixtures
# ─────────────────────────────────────────────────────────────────────────────
def make_user(user_id: int, **overrides) -> UserRecord:
    fields = dict(
        id=user_id,
        first_name=f"First{user_id}",
        last_name=f"Last{user_id}",
        email=f"user{user_id}@reqres.in",
        avatar=f"https://reqres.in/img/faces/{user_id}-image.jpg",
    )
    fields.update(overrides)
    return UserRecord(**fields)


def make_users(count: int) -> List[UserRecord]:
    return [make_user(i) for i in range(1, count + 1)]


class FakeDirectory:
    """In-memory stand-in for ``DirectoryClient``.

    Page fetches and mutations can be held on an ``asyncio.Event`` gate so
    tests control completion order, and can be made to fail.
    """

    def __init__(self, users: List[UserRecord], per_page: int = 6, token: Optional[str] = "test-token"):
        self.users = list(users)
        self.per_page = per_page
        self.tokens = TokenStore(token)
        self.fetch_calls: List[int] = []
        self.update_calls: List[tuple] = []
        self.delete_calls: List[int] = []
        self.page_gates: Dict[int, asyncio.Event] = {}
        self.page_errors: Dict[int, Exception] = {}
        self.mutation_gate: Optional[asyncio.Event] = None
        self.mutation_error: Optional[Exception] = None
        self.update_echo: Optional[dict] = None

    @property
    def total_pages(self) -> int:
        return max(1, -(-len(self.users) // self.per_page))

    def gate_page(self, page: int) -> asyncio.Event:
        self.page_gates[page] = asyncio.Event()
        return self.page_gates[page]

    async def login(self, email: str, password: str) -> str:
        self.tokens.set("test-token")
        return "test-token"

    async def fetch_page(self, page: int) -> UserPage:
        self.fetch_calls.append(page)
        gate = self.page_gates.get(page)
        if gate is not None:
            await gate.wait()
        if page in self.page_errors:
            raise self.page_errors[page]
        start = (page - 1) * self.per_page
        return UserPage(page=page, total_pages=self.total_pages, records=self.users[start:start + self.per_page])

    async def update_record(self, user_id: int, fields: dict) -> dict:
        self.update_calls.append((user_id, dict(fields)))
        await self._mutation_checkpoint()
        # reqres echoes back exactly what it was sent
        return dict(self.update_echo) if self.update_echo is not None else dict(fields)

    async def delete_record(self, user_id: int) -> None:
        self.delete_calls.append(user_id)
        await self._mutation_checkpoint()

    async def _mutation_checkpoint(self) -> None:
        if self.mutation_gate is not None:
            await self.mutation_gate.wait()
        if self.mutation_error is not None:
            raise self.mutation_error


@pytest.fixture()
def users():
    """Twelve users across two remote pages of six; two of them match "smith"."""
    records = make_users(12)
    records[2] = make_user(3, last_name="Smith")
    records[10] = make_user(11, email="jo.smith@reqres.in")
    return records


@pytest.fixture()
def directory(users):
    return FakeDirectory(users)
