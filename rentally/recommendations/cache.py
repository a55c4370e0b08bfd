"""
Recommendation result cache.

Entries are keyed by (user id, kind, category) and expire after a fixed
TTL. Concurrent misses on the same key share one computation.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Hashable

from .config import DEFAULT_RECOMMENDATION_CONFIG

logger = logging.getLogger(__name__)

CacheKey = tuple[str, str, str]


def make_key(user_id: str | None, kind: str, category: str) -> CacheKey:
    return (user_id or "anonymous", kind, category.strip().lower() or "all")


def _owned_by(key: Hashable, user_id: str) -> bool:
    return isinstance(key, tuple) and bool(key) and key[0] == user_id


class ResultCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_RECOMMENDATION_CONFIG.cache_ttl_seconds,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, dict[str, Any]] = {}
        self._inflight: dict[Hashable, asyncio.Future] = {}
        # Computations detached by invalidation; their result is not stored.
        self._stale: set[asyncio.Future] = set()
        self._hits = 0
        self._misses = 0

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry and self._clock() - entry["created_at"] < self._ttl:
            self._hits += 1
            return entry["value"]
        if entry:
            del self._entries[key]
        self._misses += 1
        return None

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = {"value": value, "created_at": self._clock()}

    def invalidate(self, key: Hashable) -> bool:
        self._detach(key)
        return self._entries.pop(key, None) is not None

    def invalidate_user(self, user_id: str) -> int:
        """Drop every entry whose key starts with ``user_id``.

        Computations already running for the user still answer their callers
        but are not cached. Returns the number of stored entries dropped.
        """
        for key in [k for k in self._inflight if _owned_by(k, user_id)]:
            self._detach(key)
        doomed = [k for k in self._entries if _owned_by(k, user_id)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def _detach(self, key: Hashable) -> None:
        """Stop new callers joining the running computation for ``key``."""
        pending = self._inflight.pop(key, None)
        if pending is not None:
            self._stale.add(pending)

    async def single_flight(self, key: Hashable, compute: Callable[[], Awaitable[Any]]) -> Any:
        """Run ``compute`` once per key at a time and cache its result.

        Callers arriving while a computation is in flight await the same
        result (or exception) instead of recomputing.
        """
        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight computation for %s", key)
            return await asyncio.shield(pending)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await compute()
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unjoined failure is not reported by the loop.
            future.exception()
            raise
        except BaseException:
            future.cancel()
            raise
        else:
            if future in self._stale:
                logger.info("Not caching %s, invalidated while computing", key)
            else:
                self.set(key, value)
            future.set_result(value)
            return value
        finally:
            if self._inflight.get(key) is future:
                del self._inflight[key]
            self._stale.discard(future)

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    def clear(self) -> None:
        for key in list(self._inflight):
            self._detach(key)
        self._entries.clear()
        self._hits = 0
        self._misses = 0


_cache: ResultCache | None = None


def get_cache() -> ResultCache:
    """Process-wide cache used by the API; tests build their own."""
    global _cache
    if _cache is None:
        _cache = ResultCache()
    return _cache
