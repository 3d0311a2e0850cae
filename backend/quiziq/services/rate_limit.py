"""
Fixed-window rate limiting for the collector.

A window of ``window_ms`` opens on the first request for a key and
admits up to ``limit`` requests. A request arriving after the window ends
lazily opens a new one, so no sweep is needed for correctness; the
periodic ``purge_expired`` only bounds memory.

``InMemoryRateLimiter`` is only correct for a single process. Use
``RedisRateLimiter`` when several instances serve the collector.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from quiziq.core.config import Settings
from quiziq.core.logging import get_logger

logger = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single check; ``reset_at`` is epoch-ms."""

    allowed: bool
    remaining: int
    reset_at: int


class RateLimiter(Protocol):
    async def check_and_consume(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        ...


def collect_key(origin: str, client_ip: str, session_id: str) -> str:
    """One budget per origin, client IP and snippet session."""
    return f"collect:{origin}:{client_ip}:{session_id}"


@dataclass
class _Window:
    count: int
    reset_at: int


class InMemoryRateLimiter:
    """Process-local counter map guarded by a lock."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    async def check_and_consume(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        async with self._lock:
            now = self._clock()
            window = self._windows.get(key)

            if window is None or window.reset_at < now:
                window = _Window(count=1, reset_at=now + window_ms)
                self._windows[key] = window
                return RateLimitResult(
                    allowed=limit >= 1,
                    remaining=max(limit - 1, 0),
                    reset_at=window.reset_at,
                )

            if window.count >= limit:
                return RateLimitResult(allowed=False, remaining=0, reset_at=window.reset_at)

            window.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=limit - window.count,
                reset_at=window.reset_at,
            )

    async def purge_expired(self) -> int:
        """Drop windows that have ended. Returns how many were removed."""
        async with self._lock:
            now = self._clock()
            expired = [key for key, window in self._windows.items() if window.reset_at < now]
            for key in expired:
                del self._windows[key]
        return len(expired)

    async def run_cleanup(self, interval_seconds: float) -> None:
        """Purge loop for the application lifespan; cancelled on shutdown."""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = await self.purge_expired()
            if removed:
                logger.debug("Rate limit windows purged", removed=removed, live=len(self))


class RedisRateLimiter:
    """
    Shared fixed-window counter.

    SET NX PX, INCR and PTTL run in one MULTI/EXEC, so every instance sees
    the same count and the window starts with the first request.
    """

    def __init__(self, redis, prefix: str = "quiziq:rl:", clock: Callable[[], int] = now_ms) -> None:
        self._redis = redis
        self._prefix = prefix
        self._clock = clock

    async def check_and_consume(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        redis_key = f"{self._prefix}{key}"
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.set(redis_key, 0, px=window_ms, nx=True)
            pipe.incr(redis_key)
            pipe.pttl(redis_key)
            _, count, ttl = await pipe.execute()

        ttl = ttl if ttl and ttl > 0 else window_ms
        reset_at = self._clock() + ttl
        if count > limit:
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)
        return RateLimitResult(allowed=True, remaining=limit - count, reset_at=reset_at)

    async def close(self) -> None:
        await self._redis.aclose()


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Pick the backend named by ``RATE_LIMIT_BACKEND``."""
    if settings.rate_limit_backend == "redis":
        if not settings.redis_url:
            raise RuntimeError("RATE_LIMIT_BACKEND=redis requires REDIS_URL")
        from redis import asyncio as redis_asyncio

        client = redis_asyncio.from_url(str(settings.redis_url))
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(client)

    logger.info("Using in-memory rate limiter")
    return InMemoryRateLimiter()


async def cleanup_rate_limiter(limiter: Optional[RateLimiter]) -> None:
    if isinstance(limiter, RedisRateLimiter):
        await limiter.close()
