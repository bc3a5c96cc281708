from __future__ import annotations

from redis.exceptions import ConnectionError as RedisConnectionError

from orderflow.services.rate_limit import InMemoryRateLimiter, RateLimitResult, RedisRateLimiter

WINDOW_MS = 15 * 60 * 1000


class _Clock:
    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now


def test_sixth_attempt_in_window_is_denied_with_retry_after() -> None:
    clock = _Clock()
    limiter = InMemoryRateLimiter(clock=clock)

    outcomes = [limiter.check("login:a@itl.tj", 5, WINDOW_MS).allowed for _ in range(5)]
    clock.now = 60_000
    denied = limiter.check("login:a@itl.tj", 5, WINDOW_MS)

    assert outcomes == [True] * 5
    assert denied.allowed is False
    assert denied.retry_after_ms == WINDOW_MS - 60_000
    assert denied.retry_after_seconds == (WINDOW_MS - 60_000) // 1000


def test_window_resets_after_expiry() -> None:
    clock = _Clock()
    limiter = InMemoryRateLimiter(clock=clock)
    for _ in range(6):
        limiter.check("k", 5, WINDOW_MS)

    clock.now = WINDOW_MS
    assert limiter.check("k", 5, WINDOW_MS).allowed is True


def test_keys_are_counted_separately() -> None:
    limiter = InMemoryRateLimiter(clock=_Clock())
    for _ in range(5):
        limiter.check("login:a@itl.tj", 5, WINDOW_MS)

    assert limiter.check("login:a@itl.tj", 5, WINDOW_MS).allowed is False
    assert limiter.check("login:b@itl.tj", 5, WINDOW_MS).allowed is True


def test_sweep_drops_only_expired_windows() -> None:
    clock = _Clock()
    limiter = InMemoryRateLimiter(clock=clock)
    limiter.check("short", 5, 1_000)
    limiter.check("long", 5, WINDOW_MS)

    clock.now = 2_000
    assert limiter.sweep() == 1
    assert len(limiter) == 1


def test_retry_after_seconds_rounds_up() -> None:
    assert RateLimitResult(allowed=False, retry_after_ms=1).retry_after_seconds == 1
    assert RateLimitResult(allowed=False, retry_after_ms=1_001).retry_after_seconds == 2
    assert RateLimitResult(allowed=True).retry_after_seconds == 0


class _RedisStub:
    def __init__(self):
        self.counts: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    def pexpire(self, key, ttl):
        self.ttls[key] = ttl

    def pttl(self, key):
        return self.ttls.get(key, -1)


class _BrokenRedis:
    def incr(self, key):
        raise RedisConnectionError("redis is down")


def test_redis_limiter_counts_through_shared_store() -> None:
    stub = _RedisStub()
    limiter = RedisRateLimiter(stub)

    outcomes = [limiter.check("portal-auth:1.2.3.4", 2, WINDOW_MS).allowed for _ in range(3)]

    assert outcomes == [True, True, False]
    assert stub.ttls == {"ratelimit:portal-auth:1.2.3.4": WINDOW_MS}


def test_redis_limiter_fails_open_when_redis_is_unavailable() -> None:
    limiter = RedisRateLimiter(_BrokenRedis())

    assert limiter.check("login:a@itl.tj", 1, WINDOW_MS).allowed is True
