"""In-memory sliding-window rate limiter for the sign-in endpoint.

This throttles per client IP, in front of the per-account lockout policy.
Each app instance owns its limiter; with several replicas use Redis instead.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Callable

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class InMemoryRateLimiter:
    """Sliding-window in-memory rate limiter keyed by an arbitrary string."""

    def __init__(
        self,
        window_seconds: int = 60,
        max_attempts: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window = window_seconds
        self._max = max_attempts
        self._clock = clock
        self._attempts: dict[str, list[float]] = defaultdict(list)
        self._last_sweep = clock()

    def check(self, key: str) -> None:
        """Raise HTTP 429 if *key* has exceeded *max_attempts* in the window."""
        now = self._clock()
        if now - self._last_sweep >= self._window:
            self._sweep(now)
        recent = [t for t in self._attempts[key] if now - t < self._window]
        if len(recent) >= self._max:
            self._attempts[key] = recent
            retry_after = max(int(self._window - (now - recent[0])), 1)
            logger.warning("Rate limit exceeded for %s", key)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many attempts. Try again in {retry_after} seconds.",
                headers={"Retry-After": str(retry_after)},
            )
        recent.append(now)
        self._attempts[key] = recent

    def _sweep(self, now: float) -> None:
        """Forget keys with no attempts left in the window."""
        idle = [
            k
            for k, times in self._attempts.items()
            if not times or now - times[-1] >= self._window
        ]
        for k in idle:
            del self._attempts[k]
        self._last_sweep = now

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._attempts.clear()
        else:
            self._attempts.pop(key, None)
