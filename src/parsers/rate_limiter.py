import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Protocol

from loguru import logger


class Limiter(Protocol):
    async def acquire(self) -> None: ...


class TokenBucket:
    """Token bucket rate limiter for async HTTP clients.

    Tokens refill continuously from elapsed clock time, capped at capacity.
    ``acquire`` never rejects: it sleeps until a token should be available
    and re-checks, since other callers may have drained the bucket meanwhile.
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if capacity < 1 or refill_rate <= 0:
            raise ValueError("capacity must be >= 1 and refill_rate > 0")
        self._capacity = capacity
        self._refill_rate = refill_rate
        self._clock = clock
        self._sleep = sleep
        self._tokens = capacity
        self._last_refill = clock()

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self._capacity, self._tokens + elapsed * self._refill_rate)
        self._last_refill = now

    async def acquire(self) -> None:
        while True:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return
            wait = (1 - self._tokens) / self._refill_rate
            await self._sleep(wait)


class UpstreamLimiter:
    """Gateway view bound to one upstream key; what HTTP clients hold."""

    def __init__(self, gateway: "RateLimitGateway", key: str) -> None:
        self._gateway = gateway
        self.key = key

    async def acquire(self) -> None:
        await self._gateway.acquire(self.key)


class RateLimitGateway:
    """Per-upstream token buckets shared by every client in the process.

    Keys without a configured limit pass straight through: that is the
    "no limit configured" policy, not a missing entry.
    """

    def __init__(
        self,
        limits: dict[str, tuple[float, float]],
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._buckets: dict[str, TokenBucket] = {
            key: TokenBucket(capacity, rate, clock=clock, sleep=sleep)
            for key, (capacity, rate) in limits.items()
        }

    def is_limited(self, key: str) -> bool:
        return key in self._buckets

    async def acquire(self, key: str) -> None:
        bucket = self._buckets.get(key)
        if bucket is None:
            logger.trace(f"[RATE] no limit configured for {key!r}, passing through")
            return
        await bucket.acquire()

    def limiter(self, key: str) -> UpstreamLimiter:
        return UpstreamLimiter(self, key)
