from __future__ import annotations

import copy
import json
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

import redis

from series_quiz.core.config import settings

CUMULATIVE_QUIZ_PREFIX = "cumulative_quiz:"


def cumulative_quiz_key(video_id: int | str, language: str) -> str:
    return f"{CUMULATIVE_QUIZ_PREFIX}{video_id}:{language}"


class Cache(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def invalidate(self, key: str) -> None: ...

    def has(self, key: str) -> bool: ...

    def clear(self, prefix: str | None = None) -> int: ...

    def stats(self) -> dict[str, int]: ...


class MemoryCache:
    """
    Process-local cache with per-key expiry.
    Values are deep-copied in and out so callers never share mutable state with the cache.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self.misses += 1
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._data[key]
                self.misses += 1
                return None
            self.hits += 1
            return copy.deepcopy(value)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        with self._lock:
            self._data[key] = (self._clock() + ttl_seconds, copy.deepcopy(value))

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def has(self, key: str) -> bool:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return False
            if self._clock() >= entry[0]:
                del self._data[key]
                return False
            return True

    def clear(self, prefix: str | None = None) -> int:
        with self._lock:
            keys = [k for k in self._data if prefix is None or k.startswith(prefix)]
            for k in keys:
                del self._data[k]
            return len(keys)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"hits": self.hits, "misses": self.misses, "size": len(self._data)}


class RedisCache:
    """JSON values in redis with SETEX expiry."""

    def __init__(self, url: str, client=None):
        if client is None:
            client = redis.Redis.from_url(url, decode_responses=True)
        self.client = client
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Any | None:
        raw = self.client.get(key)
        if raw is None:
            self.misses += 1
            return None
        self.hits += 1
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self.client.setex(key, int(ttl_seconds), json.dumps(value, ensure_ascii=False))

    def invalidate(self, key: str) -> None:
        self.client.delete(key)

    def has(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def clear(self, prefix: str | None = None) -> int:
        keys = list(self.client.scan_iter(match=f"{prefix or ''}*"))
        if not keys:
            return 0
        return int(self.client.delete(*keys))

    def stats(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "size": int(self.client.dbsize())}


_cache: Cache | None = None
_cache_lock = threading.Lock()


def build_cache(backend: str, redis_url: str) -> Cache:
    if backend == "memory":
        return MemoryCache()
    if backend == "redis":
        return RedisCache(redis_url)
    raise ValueError(f"Unknown CACHE_BACKEND: {backend!r} (use 'redis' or 'memory')")


def get_cache() -> Cache:
    global _cache
    with _cache_lock:
        if _cache is None:
            _cache = build_cache(settings.cache_backend, settings.redis_url)
        return _cache
