"""Deduplicating, rate-limited work queue for object keys.

Guarantees:
- a key waiting in the queue is stored once, however often it is added
- a key being processed is never handed to a second worker; adding it again
  marks it dirty and it is re-queued when the worker calls ``done``
- ``add_rate_limited`` delays a key exponentially per failure, ``forget`` resets it
"""

from __future__ import annotations

import asyncio
from collections import deque
from logging import getLogger

from corehosts.config.resilience import QueueRateLimit

log = getLogger(__name__)


class ExponentialFailureRateLimiter:
    """Per-key ``base_delay * 2**failures`` capped at ``max_delay``."""

    def __init__(self, limit: QueueRateLimit | None = None) -> None:
        self.limit = limit or QueueRateLimit()
        self._failures: dict[str, int] = {}

    def when(self, key: str) -> float:
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        try:
            delay = self.limit.base_delay * 2**failures
        except OverflowError:
            return self.limit.max_delay
        return min(delay, self.limit.max_delay)

    def num_requeues(self, key: str) -> int:
        return self._failures.get(key, 0)

    def forget(self, key: str) -> None:
        self._failures.pop(key, None)


class RateLimitingQueue:
    def __init__(
        self,
        name: str,
        rate_limiter: ExponentialFailureRateLimiter | None = None,
    ) -> None:
        self.name = name
        self.rate_limiter = rate_limiter or ExponentialFailureRateLimiter()
        self._queue: deque[str] = deque()
        self._dirty: set[str] = set()
        self._processing: set[str] = set()
        self._waiting: dict[str, asyncio.TimerHandle] = {}
        self._has_items = asyncio.Event()
        self._shutting_down = False

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def add(self, key: str) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.append(key)
        self._wake()

    def add_after(self, key: str, delay: float) -> None:
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        ready_at = loop.time() + delay
        pending = self._waiting.get(key)
        if pending is not None:
            # the earliest deadline wins
            if pending.when() <= ready_at:
                return
            pending.cancel()
        self._waiting[key] = loop.call_at(ready_at, self._ready, key)

    def add_rate_limited(self, key: str) -> None:
        delay = self.rate_limiter.when(key)
        log.debug("Requeue %s on %s in %.3fs", key, self.name, delay)
        self.add_after(key, delay)

    def forget(self, key: str) -> None:
        self.rate_limiter.forget(key)

    def num_requeues(self, key: str) -> int:
        return self.rate_limiter.num_requeues(key)

    async def get(self) -> str | None:
        """Wait for the next key; ``None`` once the queue is shut down."""

        while not self._queue:
            if self._shutting_down:
                return None
            self._has_items.clear()
            await self._has_items.wait()
        key = self._queue.popleft()
        self._processing.add(key)
        self._dirty.discard(key)
        return key

    def done(self, key: str) -> None:
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._queue.append(key)
            self._wake()

    def shut_down(self) -> None:
        self._shutting_down = True
        for handle in self._waiting.values():
            handle.cancel()
        self._waiting.clear()
        self._wake()

    def _ready(self, key: str) -> None:
        self._waiting.pop(key, None)
        self.add(key)

    def _wake(self) -> None:
        self._has_items.set()
