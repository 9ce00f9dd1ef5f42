"""Per-provider rate limiting and result memoisation for outbound calls.

``RateLimitedCache`` is the single cache shared by every provider adapter.
It keeps two pieces of state:

- the last dispatch time of each provider, guarded by one ``asyncio.Lock``
  per provider so that two different providers never wait on each other;
- a ``(provider_id, request_key) -> CacheEntry`` mapping.

Only successful results are stored. The write happens in the caller's task
after the operation returned, so a cancelled caller never populates the
cache.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, TypeVar

from ..models.domain import CacheEntry, Coordinate

logger = logging.getLogger(__name__)

T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")


def coordinate_key(points: Iterable[Coordinate], *extra: object, precision: int = 6) -> str:
    """Key for coordinate requests; near-duplicate positions collapse onto the same key."""

    parts = [f"{p.latitude:.{precision}f},{p.longitude:.{precision}f}" for p in points]
    key = ";".join(parts)
    if extra:
        key += "|" + "|".join(str(item) for item in extra)
    return key


def text_key(text: str, *extra: object) -> str:
    key = _WHITESPACE.sub(" ", text.strip().lower())
    if extra:
        key += "|" + "|".join(str(item) for item in extra)
    return key


@dataclass(slots=True)
class CacheStats:
    size: int
    keys: list[str]


class RateLimitedCache:
    """Wraps provider calls with a minimum-interval throttle and a key/result memo."""

    def __init__(
        self,
        min_intervals: Mapping[str, float] | None = None,
        *,
        default_interval: float = 0.0,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._intervals = dict(min_intervals or {})
        self._default_interval = default_interval
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._sleep = sleep
        self._entries: OrderedDict[tuple[str, str], CacheEntry[Any]] = OrderedDict()
        self._stored_at: dict[tuple[str, str], float] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_dispatch: dict[str, float] = {}

    def interval_for(self, provider_id: str) -> float:
        return self._intervals.get(provider_id, self._default_interval)

    def _lookup(self, key: tuple[str, str]) -> CacheEntry[Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._ttl is not None and self._clock() - self._stored_at[key] > self._ttl:
            logger.debug("cache: EXPIRED %s", key)
            self._entries.pop(key, None)
            self._stored_at.pop(key, None)
            return None
        return entry

    def _store(self, key: tuple[str, str], value: Any) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, created_at=datetime.now(timezone.utc))
        self._entries.move_to_end(key)
        self._stored_at[key] = self._clock()
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._stored_at.pop(evicted, None)
                logger.debug("cache: EVICTED %s", evicted)

    async def throttle(self, provider_id: str) -> None:
        """Wait for the provider's next dispatch slot and reserve it."""

        interval = self.interval_for(provider_id)
        if interval <= 0:
            self._last_dispatch[provider_id] = self._clock()
            return
        lock = self._locks.setdefault(provider_id, asyncio.Lock())
        async with lock:
            last = self._last_dispatch.get(provider_id)
            if last is not None:
                wait_s = interval - (self._clock() - last)
                if wait_s > 0:
                    logger.debug("rate-limit: %s sleeping %.3fs", provider_id, wait_s)
                    await self._sleep(wait_s)
            self._last_dispatch[provider_id] = self._clock()

    async def call(
        self,
        provider_id: str,
        request_key: str,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        key = (provider_id, request_key)
        entry = self._lookup(key)
        if entry is not None:
            logger.debug("cache: HIT %s", key)
            return entry.value

        await self.throttle(provider_id)
        value = await operation()
        self._store(key, value)
        logger.debug("cache: SET %s", key)
        return value

    def clear_cache(self, provider_id: str | None = None) -> int:
        """Drop cached results (all, or one provider's). Returns the number of entries removed."""

        if provider_id is None:
            removed = len(self._entries)
            self._entries.clear()
            self._stored_at.clear()
        else:
            keys = [key for key in self._entries if key[0] == provider_id]
            for key in keys:
                del self._entries[key]
                self._stored_at.pop(key, None)
            removed = len(keys)
        logger.info("cache cleared provider=%s removed=%d", provider_id or "*", removed)
        return removed

    def cache_stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            keys=[f"{provider}:{request}" for provider, request in self._entries],
        )
