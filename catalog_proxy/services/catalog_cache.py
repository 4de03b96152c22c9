"""In-process TTL cache for catalog snapshots and shaped query results.

Entries expire after their own TTL and every `put` sweeps out expired entries,
so one-off keys (cursor walks, ad-hoc masks) do not accumulate. There is no
size-based eviction. Concurrent misses on the same key share one in-flight
load, and no lock is held while the loader runs, so slow upstream calls never
block readers of other keys.

`invalidate()` bumps a generation counter: a load that started before the
invalidation still answers its waiters but does not repopulate the cache.
"""
import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar, Union

from catalog_proxy.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CatalogCache:
    """Keyed TTL store with single-flight population."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._inflight: Dict[str, "asyncio.Task[Any]"] = {}
        self._generation = 0

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for expires_at, _ in self._entries.values() if expires_at > now)

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for `key`, or None on a miss or after expiry."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = (now + ttl_seconds, value)

    def ttl_remaining(self, key: str) -> Optional[float]:
        """Seconds until `key` expires, or None when it is not cached."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        remaining = entry[0] - self._clock()
        return remaining if remaining > 0 else None

    def _sweep(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for k in expired:
            del self._entries[k]

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one entry, or every entry when no key is given."""
        self._generation += 1
        if key is None:
            self._entries.clear()
            self._inflight.clear()
            logger.info("Cache invalidated (all entries)")
        else:
            self._entries.pop(key, None)
            self._inflight.pop(key, None)
            logger.info("Cache entry invalidated", extra={"cache_key": key})

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: Union[float, Callable[[], float]],
    ) -> Tuple[T, bool]:
        """Return `(value, hit)`. On a miss, run `loader` once for all concurrent callers.

        `ttl_seconds` may be a callable, evaluated once the value is loaded.
        Waiters are shielded: a cancelled request stops waiting but does not
        abort the shared load other requests depend on.
        """
        cached = self.get(key)
        if cached is not None:
            return cached, True

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key, loader, ttl_seconds, self._generation))
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        return await asyncio.shield(task), False

    async def _load(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: Union[float, Callable[[], float]],
        generation: int,
    ) -> T:
        value = await loader()
        if generation == self._generation:
            ttl = ttl_seconds() if callable(ttl_seconds) else ttl_seconds
            self.put(key, value, ttl)
        else:
            logger.debug("Discarding load started before invalidation", extra={"cache_key": key})
        return value

    def _forget(self, key: str, task: "asyncio.Task[Any]") -> None:
        if self._inflight.get(key) is task:
            self._inflight.pop(key, None)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Cache load failed", extra={"cache_key": key})
