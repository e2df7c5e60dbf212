"""In-memory throttling of failed login attempts."""
from __future__ import annotations

import asyncio
import time
from collections import defaultdict, deque
from typing import Callable, DefaultDict, Deque


class LoginThrottle:
    """Sliding-window counter of failed logins per key, guarded by an asyncio lock."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._failures: DefaultDict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._clock = clock

    def _prune(self, bucket: Deque[float], window_seconds: int) -> None:
        window_start = self._clock() - window_seconds
        while bucket and bucket[0] < window_start:
            bucket.popleft()

    async def is_blocked(self, key: str, max_failures: int, window_seconds: int) -> bool:
        """Return True when the key already used up its failures for the window."""
        async with self._lock:
            bucket = self._failures.get(key)
            if not bucket:
                return False
            self._prune(bucket, window_seconds)
            return len(bucket) >= max_failures

    async def record_failure(self, key: str) -> None:
        async with self._lock:
            self._failures[key].append(self._clock())

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._failures.pop(key, None)


login_throttle = LoginThrottle()
