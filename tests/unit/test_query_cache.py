import asyncio

import pytest
from pydantic import TypeAdapter

from crm_console.errors import ConsoleError
from crm_console.models.api.person_request import PeopleFilters
from crm_console.models.domain.enums import PersonStatus
from crm_console.services.api_client import ApiError
from crm_console.services.query_cache import QueryCache, key_matches, make_key

INTS = TypeAdapter(list[int])


def test_equal_filters_make_equal_keys():
    a = make_key("people", PeopleFilters(status=PersonStatus.LEAD, q=" "))
    b = make_key("people", {"status": "LEAD", "q": None})

    assert a == b


def test_key_prefix_matching():
    assert key_matches(("person", "p-1"), ("person",))
    assert not key_matches(("people",), ("person",))
    assert not key_matches(("person",), ("person", "p-1"))


@pytest.mark.asyncio
async def test_disabled_query_is_idle_and_never_loads(cache):
    calls = []

    async def load():
        calls.append(1)
        return [1]

    result = await cache.fetch(("x",), load, INTS, enabled=False)

    assert result.is_idle
    assert calls == []


@pytest.mark.asyncio
async def test_fresh_entry_served_from_cache(cache):
    calls = []

    async def load():
        calls.append(1)
        return [1, 2]

    first = await cache.fetch(("x",), load, INTS)
    second = await cache.fetch(("x",), load, INTS)

    assert first.data == [1, 2] and not first.from_cache
    assert second.data == [1, 2] and second.from_cache
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_invalidate_marks_prefix_stale_and_refetches(cache):
    values = iter([[1], [2]])

    async def load():
        return next(values)

    await cache.fetch(("people", {"status": "LEAD"}), load, INTS)
    await cache.set_data(("settings",), [9], INTS)

    marked = await cache.invalidate(("people",))

    assert marked == 1
    assert await cache.is_stale(("people", {"status": "LEAD"})) is True
    assert await cache.is_stale(("settings",)) is False
    result = await cache.fetch(("people", {"status": "LEAD"}), load, INTS)
    assert result.data == [2]
    assert await cache.is_stale(("people", {"status": "LEAD"})) is False


@pytest.mark.asyncio
async def test_concurrent_reads_share_one_load(cache):
    calls = []
    gate = asyncio.Event()

    async def load():
        calls.append(1)
        await gate.wait()
        return [7]

    tasks = [asyncio.create_task(cache.fetch(("x",), load, INTS)) for _ in range(3)]
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(*tasks)

    assert [r.data for r in results] == [[7], [7], [7]]
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_failed_refetch_keeps_previous_data(cache):
    await cache.set_data(("x",), [1], INTS)
    await cache.invalidate(("x",))

    async def load():
        raise ApiError("boom", status=500)

    result = await cache.fetch(("x",), load, INTS)

    assert result.is_error
    assert result.data == [1]
    assert result.is_stale
    assert isinstance(result.error, ApiError)


@pytest.mark.asyncio
async def test_failed_mutation_leaves_cache_untouched(cache):
    await cache.set_data(("people",), [1], INTS)

    async def call():
        raise ConsoleError("rejected")

    with pytest.raises(ConsoleError):
        await cache.mutate(call, invalidates=[("people",)])

    assert await cache.is_stale(("people",)) is False


@pytest.mark.asyncio
async def test_successful_mutation_invalidates_then_returns(cache):
    await cache.set_data(("people",), [1], INTS)

    async def call():
        return "ok"

    assert await cache.mutate(call, invalidates=[("people",)]) == "ok"
    assert await cache.is_stale(("people",)) is True


@pytest.mark.asyncio
async def test_cancelled_mutation_does_not_invalidate(cache):
    await cache.set_data(("people",), [1], INTS)
    started = asyncio.Event()

    async def call():
        started.set()
        await asyncio.sleep(10)

    task = asyncio.create_task(cache.mutate(call, invalidates=[("people",)]))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await cache.is_stale(("people",)) is False


@pytest.mark.asyncio
async def test_peek_and_clear(cache):
    assert await cache.peek(("x",), INTS) is None
    await cache.set_data(("x",), [3], INTS)
    assert await cache.peek(("x",), INTS) == [3]

    await cache.clear()

    assert await cache.is_stale(("x",)) is None


@pytest.mark.asyncio
async def test_unreadable_entry_is_treated_as_missing():
    cache = QueryCache()
    await cache.store.set('["x"]', "not json")

    assert await cache.peek(("x",), INTS) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("cached_before", [False, True])
async def test_mutation_during_load_forces_refetch(cache, cached_before):
    server = {"people": [1]}
    read_started = asyncio.Event()
    release = asyncio.Event()

    async def slow_load():
        snapshot = list(server["people"])
        read_started.set()
        await release.wait()
        return snapshot

    async def change():
        server["people"] = [2]

    async def load():
        return list(server["people"])

    if cached_before:
        await cache.set_data(("people", {}), [0], INTS)
        await cache.invalidate(("people",))

    pending = asyncio.create_task(cache.fetch(("people", {}), slow_load, INTS))
    await read_started.wait()
    await cache.mutate(change, invalidates=[("people",)])
    release.set()
    first = await pending

    assert first.data == [1]
    assert await cache.is_stale(("people", {})) is True
    second = await cache.fetch(("people", {}), load, INTS)
    assert second.data == [2]
    assert not second.from_cache


@pytest.mark.asyncio
async def test_invalidating_other_keys_keeps_load_fresh(cache):
    release = asyncio.Event()

    async def slow_load():
        await release.wait()
        return [1]

    pending = asyncio.create_task(cache.fetch(("people", {}), slow_load, INTS))
    await asyncio.sleep(0)
    await cache.invalidate(("settings",))
    release.set()
    await pending

    assert await cache.is_stale(("people", {})) is False


@pytest.mark.asyncio
async def test_undecodable_response_keeps_previous_data(cache):
    await cache.set_data(("x",), [1], INTS)
    await cache.invalidate(("x",))

    async def load():
        return INTS.validate_python(["not-an-int"])

    result = await cache.fetch(("x",), load, INTS)

    assert result.is_error
    assert result.data == [1]
    assert result.is_stale
    assert isinstance(result.error, ApiError)
    assert result.error.code == "INVALID_RESPONSE"


@pytest.mark.asyncio
async def test_undecodable_first_response_is_an_error_result(cache):
    async def load():
        return int("many")

    result = await cache.fetch(("x",), load, INTS)

    assert result.is_error
    assert result.data is None
    assert result.error.code == "INVALID_RESPONSE"
    assert await cache.is_stale(("x",)) is None
