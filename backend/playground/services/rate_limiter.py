"""Sliding-window limiter for orchestration invocations."""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_MAX_REQUESTS = 20


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    def retry_after_seconds(self, now: float) -> int:
        return max(1, int(self.reset_at - now + 0.999))


class SlidingWindowRateLimiter:
    """
    Tracks invocation timestamps per caller over a trailing window.

    A caller is denied once the number of invocations recorded within the
    window reaches ``max_requests``. Denied calls are not recorded, so a
    blocked caller regains budget as soon as the oldest invocation leaves
    the window.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def _prune(self, bucket: deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while bucket and bucket[0] <= cutoff:
            bucket.popleft()

    def check_and_record(self, caller_id: str) -> RateLimitDecision:
        """Admit and record one invocation, or deny without recording."""
        with self._lock:
            now = self._clock()
            bucket = self._hits[caller_id]
            self._prune(bucket, now)

            if len(bucket) >= self.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_at=bucket[0] + self.window_seconds,
                )

            bucket.append(now)
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(bucket),
                reset_at=bucket[0] + self.window_seconds,
            )

    def now(self) -> float:
        return self._clock()

    def reset(self, caller_id: str | None = None) -> None:
        with self._lock:
            if caller_id is None:
                self._hits.clear()
            else:
                self._hits.pop(caller_id, None)
