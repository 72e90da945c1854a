"""
Rate Limiting

This module provides two layers of rate limiting:
- Per-actor, per-operation limits for link mutations (InMemoryRateLimiter)
- IP-based limits for read endpoints of the JSON API (slowapi)

Design Decisions:
- Fixed-window counters: a burst of up to 2x max is possible across a
  window boundary
- Counters live in process memory; each instance enforces its own budget
- Callers depend on the RateLimiter interface, so a shared counter store
  (e.g. Redis) can replace the in-memory one without touching them
- Expired entries are swept opportunistically to bound memory

The public redirect path is not rate limited.
"""

import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from slowapi import Limiter
from slowapi.util import get_remote_address

from shortlinks.core.setting import settings


class RateLimiter(ABC):
    """Contract for counting requests per identifier."""

    @abstractmethod
    def allow(self, identifier: str, max_requests: int, window_ms: int) -> bool:
        """
        Record a request and report whether it is within the limit.

        Args:
            identifier: Counter key (e.g. "create-link:<actor id>")
            max_requests: Requests allowed per window
            window_ms: Window length in milliseconds

        Returns:
            True if the request is allowed, False if rate limited
        """
        pass


@dataclass
class _Window:
    count: int
    reset_time: float


def _now_ms() -> float:
    return time.monotonic() * 1000


class InMemoryRateLimiter(RateLimiter):
    """
    Process-local fixed-window rate limiter.

    State is lost on restart and not shared between instances.
    """

    def __init__(
        self,
        sweep_probability: float = 0.01,
        clock: Callable[[], float] = _now_ms,
        rand: Callable[[], float] = random.random,
    ):
        """
        Args:
            sweep_probability: Chance per call of removing expired entries
            clock: Returns the current time in milliseconds
            rand: Returns a float in [0, 1), used for sweep sampling
        """
        self._store: dict[str, _Window] = {}
        self._sweep_probability = sweep_probability
        self._clock = clock
        self._rand = rand

    def allow(self, identifier: str, max_requests: int, window_ms: int) -> bool:
        now = self._clock()

        if self._rand() < self._sweep_probability:
            self._sweep(now)

        window = self._store.get(identifier)

        # No previous requests or window has expired
        if window is None or now > window.reset_time:
            self._store[identifier] = _Window(count=1, reset_time=now + window_ms)
            return True

        if window.count >= max_requests:
            return False

        window.count += 1
        return True

    def remaining(self, identifier: str, max_requests: int) -> int:
        """Requests left for identifier in its current window."""
        window = self._store.get(identifier)
        if window is None or self._clock() > window.reset_time:
            return max_requests
        return max(0, max_requests - window.count)

    def reset(self, identifier: str) -> None:
        """Forget the counter for identifier."""
        self._store.pop(identifier, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._store.items() if now > window.reset_time]
        for key in expired:
            del self._store[key]


@dataclass(frozen=True)
class OperationLimit:
    max_requests: int
    window_ms: int


def default_mutation_limits() -> dict[str, OperationLimit]:
    """Per-operation limits for link mutations, taken from settings."""
    window = settings.RATE_LIMIT_WINDOW_MS
    return {
        "create": OperationLimit(settings.RATE_LIMIT_CREATE_MAX, window),
        "update": OperationLimit(settings.RATE_LIMIT_UPDATE_MAX, window),
        "delete": OperationLimit(settings.RATE_LIMIT_DELETE_MAX, window),
    }


def rate_limit_key(operation: str, actor_id: str) -> str:
    """Counter key; each operation gets its own budget per actor."""
    return f"{operation}-link:{actor_id}"


# Process-wide limiter for link mutations
rate_limiter = InMemoryRateLimiter(sweep_probability=settings.RATE_LIMIT_SWEEP_PROBABILITY)


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency returning the process-wide mutation limiter."""
    return rate_limiter


# IP-based limiter for read endpoints
limiter = Limiter(key_func=get_remote_address)

# Rate limit configurations per endpoint
# Format: "count/period" (e.g., "30/minute" means 30 requests per minute)
RATE_LIMITS = {
    "list_links": settings.LISTING_RATE_LIMIT,
}
