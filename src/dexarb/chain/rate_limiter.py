"""
Rate limiting for JSON-RPC endpoints.

Combines a token bucket (sustained request rate) with a fixed minimum
spacing between consecutive calls, so a burst of pool lookups cannot
hammer a public endpoint.
"""

import asyncio
import time
from dataclasses import dataclass, field

from dexarb.config.constants import RPC_MIN_CALL_INTERVAL, RPC_REQUESTS_PER_SECOND


@dataclass
class TokenBucket:
    """
    Token bucket implementation for rate limiting.

    Tokens are added at a constant rate up to a maximum capacity.
    Each request consumes one or more tokens.
    """

    capacity: int
    refill_rate: float  # tokens per second
    tokens: float = field(init=False)
    last_refill: float = field(init=False)  # monotonic seconds
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize with full bucket."""
        self.tokens = float(self.capacity)
        self.last_refill = time.monotonic()

    def _refill(self) -> None:
        """Add tokens based on elapsed time."""
        now = time.monotonic()
        self.tokens = min(
            self.capacity,
            self.tokens + (now - self.last_refill) * self.refill_rate,
        )
        self.last_refill = now

    async def acquire(self, tokens: int = 1) -> None:
        """
        Acquire tokens, waiting if necessary.

        Args:
            tokens: Number of tokens to acquire.
        """
        async with self._lock:
            self._refill()

            if self.tokens < tokens:
                await asyncio.sleep((tokens - self.tokens) / self.refill_rate)
                self._refill()

            self.tokens -= tokens

    async def try_acquire(self, tokens: int = 1) -> bool:
        """
        Try to acquire tokens without waiting.

        Returns:
            True if tokens were acquired, False if not enough available.
        """
        async with self._lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True
            return False


class RateLimiter:
    """
    Per-endpoint rate limiter.

    Enforces:
    - A sustained request rate (burst capacity = 2x rate)
    - A minimum delay between two consecutive calls
    """

    def __init__(
        self,
        requests_per_second: int = RPC_REQUESTS_PER_SECOND,
        min_interval: float = RPC_MIN_CALL_INTERVAL,
    ) -> None:
        """
        Initialize rate limiter with specified limits.

        Args:
            requests_per_second: Maximum requests per second.
            min_interval: Minimum seconds between two calls.
        """
        self._bucket = TokenBucket(
            capacity=requests_per_second * 2,
            refill_rate=float(requests_per_second),
        )
        self._min_interval = min_interval
        self._last_call = 0.0
        self._spacing_lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until the next call is allowed."""
        await self._bucket.acquire(1)

        if self._min_interval <= 0:
            return

        async with self._spacing_lock:
            wait = self._last_call + self._min_interval - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_call = time.monotonic()

    async def try_acquire(self) -> bool:
        """
        Try to acquire permission without waiting.

        Returns:
            True if permission granted.
        """
        if time.monotonic() - self._last_call < self._min_interval:
            return False
        if not await self._bucket.try_acquire(1):
            return False
        self._last_call = time.monotonic()
        return True

    @property
    def available_requests(self) -> float:
        """Get approximate number of available request tokens."""
        return self._bucket.tokens

    @property
    def min_interval(self) -> float:
        return self._min_interval
