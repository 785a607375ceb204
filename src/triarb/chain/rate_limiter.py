"""
Request pacing for the Solana RPC endpoint.

Public endpoints answer bursts with HTTP 429, so every JSON-RPC call takes
a token first. The bucket holds two seconds' worth of requests.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from triarb.config.constants import DEFAULT_RPC_REQUESTS_PER_SECOND
from triarb.utils.time import monotonic_seconds


logger = logging.getLogger(__name__)

BURST_SECONDS = 2


class TokenBucket:
    """Token bucket refilled continuously from a monotonic clock."""

    __slots__ = ("capacity", "refill_rate", "_tokens", "_updated", "_clock", "_sleep", "_lock")

    def __init__(
        self,
        capacity: int,
        refill_rate: float,
        clock: Callable[[], float] = monotonic_seconds,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize a full bucket.

        Args:
            capacity: Maximum tokens held.
            refill_rate: Tokens added per second.
            clock: Seconds source, monotonic.
            sleep: Awaitable delay used while waiting for tokens.
        """
        if capacity < 1 or refill_rate <= 0:
            raise ValueError(f"Invalid bucket: capacity={capacity}, refill_rate={refill_rate}")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = clock()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        """Tokens available right now."""
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(float(self.capacity), self._tokens + (now - self._updated) * self.refill_rate)
        self._updated = now

    def try_acquire(self, tokens: int = 1) -> bool:
        """Take tokens only if they are available right now."""
        self._refill()
        if self._tokens < tokens:
            return False
        self._tokens -= tokens
        return True

    async def acquire(self, tokens: int = 1) -> float:
        """
        Take tokens, sleeping until enough have refilled.

        Waiters are served one at a time in arrival order.

        Returns:
            Seconds spent waiting.
        """
        waited = 0.0
        async with self._lock:
            while not self.try_acquire(tokens):
                delay = (tokens - self._tokens) / self.refill_rate
                await self._sleep(delay)
                waited += delay
        return waited


class RateLimiter:
    """Paces RPC requests to a sustained rate with a short burst allowance."""

    def __init__(
        self,
        requests_per_second: int = DEFAULT_RPC_REQUESTS_PER_SECOND,
        clock: Callable[[], float] = monotonic_seconds,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._bucket = TokenBucket(
            capacity=requests_per_second * BURST_SECONDS,
            refill_rate=float(requests_per_second),
            clock=clock,
            sleep=sleep,
        )
        self.throttled = 0

    async def acquire(self) -> None:
        """Wait for permission to send one request."""
        waited = await self._bucket.acquire()
        if waited:
            self.throttled += 1
            logger.debug(f"RPC request throttled for {waited * 1000:.1f}ms")

    def try_acquire(self) -> bool:
        """Take permission for one request without waiting."""
        return self._bucket.try_acquire()

    @property
    def available(self) -> float:
        """Request tokens available right now."""
        return self._bucket.tokens
