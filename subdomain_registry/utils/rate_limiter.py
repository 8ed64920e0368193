"""Sliding window rate limiting keyed by caller.

One limiter instance is built per application and injected where needed;
there is no process-wide state.

Example:
    limiter = SlidingWindowRateLimiter(max_requests=5, window_seconds=900)

    if not (await limiter.hit("user-123")).allowed:
        return 429  # Too Many Requests
"""

import asyncio
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from time import monotonic


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    allowed: bool
    remaining: int
    reset_after: float
    limit: int


class SlidingWindowCounter:
    """Counter for one key, interpolating the previous window's count."""

    __slots__ = ("_current_count", "_previous_count", "_window_start", "_window_seconds", "_limit")

    def __init__(self, limit: int, window_seconds: float, now: float) -> None:
        self._limit = limit
        self._window_seconds = window_seconds
        self._current_count = 0
        self._previous_count = 0
        self._window_start = now

    def _maybe_rotate(self, now: float) -> None:
        elapsed = now - self._window_start
        if elapsed >= self._window_seconds:
            windows_passed = int(elapsed / self._window_seconds)
            if windows_passed >= 2:
                self._previous_count = 0
            else:
                self._previous_count = self._current_count
            self._current_count = 0
            self._window_start = now - (elapsed % self._window_seconds)

    def _weighted(self, now: float) -> tuple[float, float]:
        self._maybe_rotate(now)
        elapsed = now - self._window_start
        weight = elapsed / self._window_seconds
        weighted = self._previous_count * (1 - weight) + self._current_count
        return weighted, self._window_seconds - elapsed

    def allow(self, now: float) -> tuple[bool, int, float]:
        """Check and count a request. Returns (allowed, remaining, reset_after)."""
        weighted, reset_after = self._weighted(now)
        remaining = max(0, int(self._limit - weighted))

        if weighted >= self._limit:
            return False, remaining, reset_after

        self._current_count += 1
        return True, max(0, remaining - 1), reset_after

    def expired(self, now: float) -> bool:
        return now - self._window_start >= 2 * self._window_seconds


class SlidingWindowRateLimiter:
    """Per-key sliding window limiter with LRU eviction for bounded memory."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        max_entries: int = 10000,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._counters: OrderedDict[str, SlidingWindowCounter] = OrderedDict()
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    def _get_counter(self, key: str, now: float) -> SlidingWindowCounter:
        counter = self._counters.get(key)
        if counter is not None:
            self._counters.move_to_end(key)
            return counter

        counter = SlidingWindowCounter(self.max_requests, self.window_seconds, now)
        self._counters[key] = counter

        while len(self._counters) > self.max_entries:
            self._counters.popitem(last=False)

        return counter

    def _sweep(self, now: float) -> int:
        stale = [key for key, counter in self._counters.items() if counter.expired(now)]
        for key in stale:
            del self._counters[key]
        self._last_sweep = now
        return len(stale)

    async def hit(self, key: str) -> RateLimitResult:
        """
        Count a request for a key and report whether it is allowed.

        Idle counters are swept at most once per window, so memory tracks
        active callers as well as the LRU bound.

        Args:
            key: Caller identity, e.g. "user:<id>"

        Returns:
            RateLimitResult with allowed status and metadata
        """
        async with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            allowed, remaining, reset_after = self._get_counter(key, now).allow(now)
            return RateLimitResult(
                allowed=allowed,
                remaining=remaining,
                reset_after=reset_after,
                limit=self.max_requests,
            )

    async def cleanup(self) -> int:
        """Drop counters idle for two full windows. Returns number removed."""
        async with self._lock:
            return self._sweep(self._clock())

    def __len__(self) -> int:
        return len(self._counters)
