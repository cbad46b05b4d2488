"""Write-through update/delete and the merge policy."""
import asyncio

import pytest

from conftest import make_user
from directory_console.core.cache import LocalCache, RECORD_DELETED, RECORD_UPDATED, CacheEvent
from directory_console.core.directory import (
    AuthError,
    MutationInProgressError,
    NetworkError,
    RecordNotFoundError,
)
from directory_console.core.mutations import (
    DEFAULT_AVATAR,
    MergePolicy,
    MutationCoordinator,
    clean_fields,
    merge_update,
)


@pytest.fixture()
def cache(users):
    return LocalCache(users)


@pytest.fixture()
def coordinator(directory, cache):
    return MutationCoordinator(directory, cache)


class TestMergeUpdate:
    def test_client_fields_win_by_default(self):
        cached = make_user(1)
        merged = merge_update(cached, {"first_name": "Stale", "email": "srv@x"}, {"first_name": "Ada"})
        assert merged.first_name == "Ada"
        assert merged.email == "srv@x"
        assert merged.last_name == cached.last_name

    def test_server_policy_prefers_response(self):
        merged = merge_update(make_user(1), {"first_name": "Server"}, {"first_name": "Ada"}, MergePolicy.SERVER)
        assert merged.first_name == "Server"

    def test_policy_accepts_plain_strings(self):
        merged = merge_update(make_user(1), {"last_name": "S"}, {"last_name": "C"}, "server")
        assert merged.last_name == "S"

    def test_unknown_response_keys_are_ignored(self):
        merged = merge_update(make_user(1), {"updatedAt": "now", "id": 99}, {})
        assert merged == make_user(1)

    def test_blank_avatar_gets_generated_one(self):
        cached = make_user(1, first_name="Ada", last_name="Lovelace", avatar="")
        merged = merge_update(cached, {}, {})
        assert merged.avatar == f"{DEFAULT_AVATAR}Ada%20Lovelace&background=random"


class TestCleanFields:
    def test_drops_none_values(self):
        assert clean_fields(1, {"first_name": "A", "email": None}) == {"first_name": "A"}

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValueError, match="Unknown user field"):
            clean_fields(1, {"nickname": "x"})

    def test_rejects_id_change(self):
        with pytest.raises(ValueError, match="cannot be changed"):
            clean_fields(1, {"id": 2})

    def test_same_id_is_tolerated(self):
        assert clean_fields(1, {"id": 1, "last_name": "B"}) == {"last_name": "B"}


@pytest.mark.asyncio
async def test_update_round_trip_preserves_unsent_fields(coordinator, cache, directory):
    before = cache.get(5)

    merged = await coordinator.apply_update(5, {"first_name": "X"})

    assert directory.update_calls == [(5, {"first_name": "X"})]
    assert cache.get(5) == merged
    assert merged.first_name == "X"
    assert merged.last_name == before.last_name
    assert merged.email == before.email
    assert merged.avatar == before.avatar
    assert [r.id for r in cache.records] == list(range(1, 13))


@pytest.mark.asyncio
async def test_update_notifies_cache_listeners(coordinator, cache):
    events = []
    cache.subscribe(events.append)
    await coordinator.apply_update(2, {"email": "new@reqres.in"})
    assert events == [CacheEvent(RECORD_UPDATED, 2)]


@pytest.mark.asyncio
async def test_stale_echo_is_overridden_by_sent_fields(directory, cache):
    directory.update_echo = {"first_name": "Old", "avatar": "https://srv/new.png"}
    coordinator = MutationCoordinator(directory, cache, MergePolicy.CLIENT)

    merged = await coordinator.apply_update(1, {"first_name": "New"})

    assert merged.first_name == "New"
    assert merged.avatar == "https://srv/new.png"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [NetworkError("reset"), AuthError("expired")])
async def test_failed_update_leaves_cache_unchanged(coordinator, cache, directory, error):
    directory.mutation_error = error
    before = cache.records

    with pytest.raises(type(error)):
        await coordinator.apply_update(4, {"first_name": "Nope"})

    assert cache.records == before
    assert not coordinator.is_pending(4)


@pytest.mark.asyncio
async def test_update_unknown_id_sends_nothing(coordinator, directory):
    with pytest.raises(RecordNotFoundError):
        await coordinator.apply_update(404, {"first_name": "X"})
    assert directory.update_calls == []


@pytest.mark.asyncio
async def test_delete_removes_exactly_one(coordinator, cache, directory):
    events = []
    cache.subscribe(events.append)

    removed = await coordinator.apply_delete(7)

    assert removed.id == 7
    assert len(cache) == 11
    assert 7 not in cache
    assert directory.delete_calls == [7]
    assert events == [CacheEvent(RECORD_DELETED, 7)]


@pytest.mark.asyncio
async def test_delete_unknown_id_is_not_found(coordinator, cache, directory):
    with pytest.raises(RecordNotFoundError):
        await coordinator.apply_delete(99)
    assert len(cache) == 12
    assert directory.delete_calls == []


@pytest.mark.asyncio
async def test_failed_delete_keeps_record(coordinator, cache, directory):
    directory.mutation_error = NetworkError("timeout")
    with pytest.raises(NetworkError):
        await coordinator.apply_delete(3)
    assert 3 in cache
    assert len(cache) == 12


@pytest.mark.asyncio
async def test_second_mutation_on_same_id_is_rejected(coordinator, cache, directory):
    directory.mutation_gate = asyncio.Event()
    update = asyncio.create_task(coordinator.apply_update(6, {"first_name": "A"}))
    await asyncio.sleep(0)

    with pytest.raises(MutationInProgressError):
        await coordinator.apply_delete(6)
    with pytest.raises(MutationInProgressError):
        await coordinator.apply_update(6, {"first_name": "B"})

    directory.mutation_gate.set()
    await update
    assert cache.get(6).first_name == "A"
    assert directory.delete_calls == []
    assert not coordinator.is_pending(6)


@pytest.mark.asyncio
async def test_mutations_on_different_ids_run_together(coordinator, cache, directory):
    directory.mutation_gate = asyncio.Event()
    update = asyncio.create_task(coordinator.apply_update(1, {"last_name": "One"}))
    delete = asyncio.create_task(coordinator.apply_delete(2))
    await asyncio.sleep(0)
    assert coordinator.is_pending(1) and coordinator.is_pending(2)

    directory.mutation_gate.set()
    await asyncio.gather(update, delete)

    assert cache.get(1).last_name == "One"
    assert 2 not in cache
