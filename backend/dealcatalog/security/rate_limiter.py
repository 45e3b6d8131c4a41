"""In-memory per-caller rate limiters.

Both limiters keep their state in a process-local dict, so each serving
instance enforces its own limit.  A horizontally scaled deployment needs a
shared counter store behind the same ``allow(key)`` interface.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Protocol

Clock = Callable[[], float]


class RateLimiter(Protocol):
    """Interface shared by every limiter: ``allow(key) -> bool``."""

    window_seconds: float

    def allow(self, key: str) -> bool:
        ...


class SlidingWindowRateLimiter:
    """Sliding window limiter storing recent call timestamps per key.

    A call is allowed while fewer than ``limit`` calls from the same key fall
    inside the trailing ``window_seconds``.  Timestamps older than the window
    are dropped both for evaluation and storage; only allowed calls are
    recorded.  Once more than ``max_keys`` keys are tracked, keys whose whole
    history is stale are swept.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        max_keys: int = 5000,
        clock: Clock = time.monotonic,
    ):
        """Initialize sliding window limiter.

        Args:
            limit: Calls allowed per key inside one window
            window_seconds: Window length in seconds
            max_keys: Tracked-key count above which stale keys are swept
            clock: Time source in seconds, injectable for tests
        """
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._history: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Record a call for ``key`` and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            recent = [t for t in self._history.get(key, []) if now - t < self.window_seconds]

            if len(recent) >= self.limit:
                self._history[key] = recent
                return False

            recent.append(now)
            self._history[key] = recent

            if len(self._history) > self.max_keys:
                self._sweep(now)

            return True

    def _sweep(self, now: float) -> None:
        stale = [
            k for k, stamps in self._history.items()
            if all(now - t >= self.window_seconds for t in stamps)
        ]
        for k in stale:
            del self._history[k]

    def tracked_keys(self) -> int:
        return len(self._history)


@dataclass
class _WindowRecord:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Fixed window limiter: one counter and a reset time per key.

    The first call for a key (or the first after its window expired) starts a
    new window with count 1.  Calls inside the window increment the counter
    and are rejected once the counter has reached ``limit``.  Once more than
    ``max_keys`` keys are tracked, keys whose window has expired are swept.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        max_keys: int = 10000,
        clock: Clock = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._records: Dict[str, _WindowRecord] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Count a call for ``key`` and report whether it is allowed."""
        with self._lock:
            now = self._clock()

            if len(self._records) > self.max_keys:
                self._sweep(now)

            record = self._records.get(key)
            if record is None or record.reset_at < now:
                self._records[key] = _WindowRecord(count=1, reset_at=now + self.window_seconds)
                return True

            if record.count >= self.limit:
                return False

            record.count += 1
            return True

    def _sweep(self, now: float) -> None:
        stale = [k for k, record in self._records.items() if record.reset_at < now]
        for k in stale:
            del self._records[k]

    def tracked_keys(self) -> int:
        return len(self._records)
