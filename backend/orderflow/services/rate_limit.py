"""Fixed-window rate limiting for authentication endpoints.

The in-memory limiter is per process and resets on restart. Deployments with
more than one API instance should use the Redis backend so that all
instances share counters.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

import redis
from redis.exceptions import RedisError

from ..config import settings

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_MS = 5 * 60 * 1000


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_ms: int | None = None

    @property
    def retry_after_seconds(self) -> int:
        if not self.retry_after_ms:
            return 0
        return max(1, -(-self.retry_after_ms // 1000))


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class InMemoryRateLimiter:
    """Fixed-window counter per key."""

    def __init__(self, clock: Callable[[], int] | None = None):
        self._clock = clock or _monotonic_ms
        self._entries: dict[str, dict[str, int]] = {}
        self._lock = threading.Lock()
        self._last_sweep_ms = self._clock()

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            if now - self._last_sweep_ms >= SWEEP_INTERVAL_MS:
                self._sweep_locked(now)

            entry = self._entries.get(key)
            if entry is None or now >= entry["reset_at"]:
                self._entries[key] = {"count": 1, "reset_at": now + window_ms}
                return RateLimitResult(allowed=True)

            if entry["count"] >= limit:
                return RateLimitResult(allowed=False, retry_after_ms=entry["reset_at"] - now)

            entry["count"] += 1
            return RateLimitResult(allowed=True)

    def sweep(self) -> int:
        """Drop expired windows. Only reclaims memory; never changes outcomes."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: int) -> int:
        expired = [key for key, entry in self._entries.items() if now >= entry["reset_at"]]
        for key in expired:
            del self._entries[key]
        self._last_sweep_ms = now
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisRateLimiter:
    """Same contract as InMemoryRateLimiter, counters shared through Redis."""

    def __init__(self, client: redis.Redis, key_prefix: str = "ratelimit:"):
        self._client = client
        self._key_prefix = key_prefix

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        redis_key = f"{self._key_prefix}{key}"
        try:
            count = int(self._client.incr(redis_key))
            if count == 1:
                self._client.pexpire(redis_key, window_ms)
            if count <= limit:
                return RateLimitResult(allowed=True)
            ttl = int(self._client.pttl(redis_key))
            if ttl < 0:
                # Key lost its expiry; start a fresh window.
                self._client.pexpire(redis_key, window_ms)
                ttl = window_ms
            return RateLimitResult(allowed=False, retry_after_ms=ttl)
        except RedisError:
            # Fail open if Redis is down to avoid total auth outage.
            logger.exception("Redis error during rate limiting of %s (fail-open)", key)
            return RateLimitResult(allowed=True)


_limiter: InMemoryRateLimiter | RedisRateLimiter | None = None
_limiter_lock = threading.Lock()


def get_rate_limiter() -> InMemoryRateLimiter | RedisRateLimiter:
    """Return the process-wide limiter for the configured backend."""
    global _limiter
    if _limiter is None:
        with _limiter_lock:
            if _limiter is None:
                if settings.RATE_LIMIT_BACKEND.lower() == "redis":
                    _limiter = RedisRateLimiter(redis.from_url(settings.REDIS_URL, decode_responses=True))
                else:
                    _limiter = InMemoryRateLimiter()
    return _limiter
