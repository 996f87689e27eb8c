"""
Keyed query cache with write-then-invalidate mutations.

Every read is keyed by (entity, *params). Mutations never edit cached data: on
success they mark affected entries stale (or, for singletons, store the server's
response); on failure nothing is touched.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Generic, Literal, TypeVar

from pydantic import TypeAdapter

from crm_console.errors import INVALID_RESPONSE, ConsoleError
from crm_console.infrastructure.observability.logging import get_logger, log_cache_event
from crm_console.services.api_client import ApiError
from crm_console.services.cache_store import CacheStore, MemoryCacheStore

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

QueryKey = tuple
QueryStatus = Literal["idle", "success", "error"]


def _normalize_part(part: Any) -> Any:
    if hasattr(part, "to_params"):
        part = part.to_params()
    if isinstance(part, dict):
        return {str(k): _normalize_part(v) for k, v in sorted(part.items()) if v is not None}
    if isinstance(part, (list, tuple)):
        return [_normalize_part(p) for p in part]
    if hasattr(part, "value"):
        return part.value
    return part


def make_key(*parts: Any) -> QueryKey:
    """Build a query key; filter models and dicts are normalized so equal filters match."""
    return tuple(_normalize_part(p) for p in parts)


def serialize_key(key: QueryKey) -> str:
    return json.dumps(list(key), sort_keys=True, separators=(",", ":"))


def deserialize_key(raw: str) -> QueryKey | None:
    try:
        parts = json.loads(raw)
    except ValueError:
        return None
    return tuple(parts) if isinstance(parts, list) else None


def key_matches(key: QueryKey, prefix: QueryKey) -> bool:
    return len(key) >= len(prefix) and key[: len(prefix)] == prefix


@dataclass
class QueryResult(Generic[T]):
    """Outcome of a read: idle until a token exists, then success or error."""

    status: QueryStatus
    data: T | None = None
    error: Exception | None = None
    is_stale: bool = False
    from_cache: bool = False

    @property
    def is_idle(self) -> bool:
        return self.status == "idle"

    @property
    def is_error(self) -> bool:
        return self.status == "error"

    @property
    def is_success(self) -> bool:
        return self.status == "success"


@dataclass
class _Entry:
    data: Any
    stale: bool
    updated_at: str

    def dumps(self) -> str:
        return json.dumps({"data": self.data, "stale": self.stale, "updatedAt": self.updated_at})

    @classmethod
    def loads(cls, raw: str) -> "_Entry":
        payload = json.loads(raw)
        return cls(data=payload["data"], stale=bool(payload["stale"]), updated_at=payload["updatedAt"])


class QueryCache:
    """Mirror of server state, one entry per query key."""

    def __init__(self, store: CacheStore | None = None):
        self.store = store or MemoryCacheStore()
        self._inflight: dict[str, asyncio.Task] = {}
        # Bumped when a key is invalidated while its load is in flight
        self._generations: dict[str, int] = {}

    async def _read(self, key: QueryKey) -> _Entry | None:
        raw = await self.store.get(serialize_key(key))
        if raw is None:
            return None
        try:
            return _Entry.loads(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable cache entry", key=list(key), error=str(e))
            return None

    async def _write(self, key: QueryKey, data: Any, stale: bool = False) -> None:
        entry = _Entry(data=data, stale=stale, updated_at=datetime.now(UTC).isoformat())
        await self.store.set(serialize_key(key), entry.dumps())

    async def peek(self, key: QueryKey, adapter: TypeAdapter[T]) -> T | None:
        """Cached value for `key` without touching the network."""
        entry = await self._read(key)
        return adapter.validate_python(entry.data) if entry else None

    async def is_stale(self, key: QueryKey) -> bool | None:
        """Stale flag for `key`, or None when nothing is cached."""
        entry = await self._read(key)
        return entry.stale if entry else None

    async def fetch(
        self,
        key: QueryKey,
        loader: Callable[[], Awaitable[T]],
        adapter: TypeAdapter[T],
        *,
        enabled: bool = True,
    ) -> QueryResult[T]:
        """
        Read through the cache.

        Disabled queries return idle without calling the loader. Fresh entries are
        served from cache. Missing or stale entries are loaded once; concurrent
        callers for the same key share that load. A failed load keeps whatever
        was cached and reports the error.
        """
        if not enabled:
            return QueryResult(status="idle")

        entry = await self._read(key)
        if entry is not None and not entry.stale:
            log_cache_event("hit", key)
            return QueryResult(
                status="success",
                data=adapter.validate_python(entry.data),
                from_cache=True,
            )

        log_cache_event("miss" if entry is None else "refetch", key)
        raw_key = serialize_key(key)
        task = self._inflight.get(raw_key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader, adapter))
            self._inflight[raw_key] = task
            task.add_done_callback(lambda _t: self._finish_load(raw_key))

        try:
            data = await asyncio.shield(task)
        except ConsoleError as e:
            previous = adapter.validate_python(entry.data) if entry else None
            return QueryResult(status="error", data=previous, error=e, is_stale=entry is not None)

        return QueryResult(status="success", data=adapter.validate_python(data))

    def _finish_load(self, raw_key: str) -> None:
        self._inflight.pop(raw_key, None)
        self._generations.pop(raw_key, None)

    async def _load(self, key: QueryKey, loader: Callable[[], Awaitable[T]], adapter: TypeAdapter[T]) -> Any:
        """
        Run the loader and store its result.

        If the key was invalidated while loading, the result may predate the
        mutation, so it is stored stale and the next read refetches.

        Raises:
            ApiError: INVALID_RESPONSE when the response body does not decode
        """
        raw_key = serialize_key(key)
        generation = self._generations.get(raw_key, 0)
        try:
            value = await loader()
            data = adapter.dump_python(value, mode="json", by_alias=True)
        except ConsoleError:
            raise
        except (ValueError, TypeError) as e:
            logger.error("Failed to decode API response", key=list(key), error=str(e))
            # Decoding only runs on a successful response body
            raise ApiError(f"Invalid response format: {e}", status=200, code=INVALID_RESPONSE) from e

        stale = self._generations.get(raw_key, 0) != generation
        await self._write(key, data, stale=stale)
        if not stale and self._generations.get(raw_key, 0) != generation:
            # Invalidated while the write was pending
            stale = True
            await self._write(key, data, stale=True)
        if stale:
            log_cache_event("stored_stale", key)
        return data

    async def set_data(self, key: QueryKey, value: T, adapter: TypeAdapter[T]) -> None:
        """Store a value directly (used when a mutation returns the whole singleton)."""
        await self._write(key, adapter.dump_python(value, mode="json", by_alias=True))
        log_cache_event("set", key)

    async def invalidate(self, *prefixes: QueryKey) -> int:
        """Mark every entry under any of `prefixes` stale. Returns how many were marked."""
        for raw in list(self._inflight):
            key = deserialize_key(raw)
            if key is not None and any(key_matches(key, p) for p in prefixes):
                self._generations[raw] = self._generations.get(raw, 0) + 1

        marked = 0
        for raw in await self.store.keys():
            key = deserialize_key(raw)
            if key is None or not any(key_matches(key, p) for p in prefixes):
                continue
            entry = await self._read(key)
            if entry is None or entry.stale:
                continue
            entry.stale = True
            await self.store.set(raw, entry.dumps())
            marked += 1
        for prefix in prefixes:
            log_cache_event("invalidate", prefix, marked=marked)
        return marked

    async def mutate(
        self,
        call: Callable[[], Awaitable[R]],
        *,
        invalidates: Iterable[QueryKey] = (),
        set_data: Callable[[R], Awaitable[None]] | None = None,
    ) -> R:
        """
        Run a mutation. Cache changes happen only after it succeeds.

        Raises:
            Whatever `call` raises, with the cache untouched
        """
        result = await call()
        if set_data is not None:
            await set_data(result)
        prefixes = tuple(invalidates)
        if prefixes:
            await self.invalidate(*prefixes)
        return result

    async def clear(self) -> None:
        for raw in await self.store.keys():
            await self.store.delete(raw)
