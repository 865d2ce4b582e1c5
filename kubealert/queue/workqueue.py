"""Deduplicating, rate-limited work queue.

Items are hashable values.  The queue guarantees that an item is held by at
most one consumer at a time: between ``get()`` and the matching ``done()``
an equal item can be re-added, but it only becomes visible to ``get()``
again once ``done()`` has been called.

All methods must be called from the event loop that owns the queue; the
loop's single thread is what serialises access to the internal sets, so no
locks are needed.  ``add()`` never blocks, which makes it safe to call from
informer event handlers.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import deque
from collections.abc import Hashable
from typing import Generic, TypeVar

import structlog

from kubealert.observability.metrics import queue_adds_total, queue_depth, queue_retries_total
from kubealert.queue.rate_limiter import RateLimiter, default_controller_rate_limiter

_log = structlog.get_logger(component="queue")

T = TypeVar("T", bound=Hashable)


class WorkQueue(Generic[T]):
    """FIFO work queue with dedup, in-flight tracking, delayed adds and retry counting.

    Args:
        rate_limiter: Decides requeue delays and owns the per-item retry counters.
                      Defaults to ``default_controller_rate_limiter()``.
        name:         Label used in logs and metrics.
    """

    def __init__(self, rate_limiter: RateLimiter | None = None, name: str = "default") -> None:
        self._name = name
        self._rate_limiter = rate_limiter or default_controller_rate_limiter()

        # _dirty: items that need processing (queued, or re-added while in flight).
        # _processing: items handed out by get() and not yet done().
        self._queue: deque[T] = deque()
        self._dirty: set[T] = set()
        self._processing: set[T] = set()

        self._waiters: deque[asyncio.Future[None]] = deque()
        self._delayed: dict[T, tuple[float, asyncio.TimerHandle]] = {}
        self._shutting_down = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def __len__(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def add(self, item: T) -> None:
        """Mark *item* as needing processing.

        A no-op when an equal item is already queued.  When an equal item is
        being processed, it is queued again as soon as that one is done.
        """
        if self._shutting_down:
            return
        if item in self._dirty:
            return
        self._dirty.add(item)
        queue_adds_total.labels(queue=self._name).inc()
        if item in self._processing:
            return
        self._queue.append(item)
        self._update_depth()
        self._wake_one()

    def add_after(self, item: T, delay: float) -> None:
        """Add *item* once *delay* seconds have passed, without blocking the caller.

        If the item is already waiting, the earlier of the two ready times wins.
        """
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(item)
            return
        loop = asyncio.get_running_loop()
        ready_at = loop.time() + delay
        existing = self._delayed.get(item)
        if existing is not None:
            if existing[0] <= ready_at:
                return
            existing[1].cancel()
        handle = loop.call_at(ready_at, self._fire_delayed, item)
        self._delayed[item] = (ready_at, handle)

    def add_rate_limited(self, item: T) -> None:
        """Count a failure for *item* and re-add it after the rate limiter's delay."""
        if self._shutting_down:
            return
        delay = self._rate_limiter.when(item)
        queue_retries_total.labels(queue=self._name).inc()
        _log.debug("item_requeued", queue=self._name, delay_s=round(delay, 4))
        self.add_after(item, delay)

    def forget(self, item: T) -> None:
        """Reset the retry counter of *item*."""
        self._rate_limiter.forget(item)

    def num_requeues(self, item: T) -> int:
        return self._rate_limiter.num_requeues(item)

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    async def get(self) -> tuple[T | None, bool]:
        """Wait for the next item.

        Returns ``(item, False)``, or ``(None, True)`` once the queue has been
        shut down; callers must stop pulling at that point.  Every item
        returned must be passed to ``done()`` exactly once.
        """
        while not self._queue and not self._shutting_down:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            except asyncio.CancelledError:
                # We may have been woken for an item we will never take.
                if waiter.done() and not waiter.cancelled():
                    self._wake_one()
                raise
            finally:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(waiter)

        if self._shutting_down:
            return None, True

        item = self._queue.popleft()
        self._processing.add(item)
        self._dirty.discard(item)
        self._update_depth()
        return item, False

    def done(self, item: T) -> None:
        """Finish processing *item*; requeue it if it was re-added meanwhile."""
        if item not in self._processing:
            return
        self._processing.discard(item)
        if item in self._dirty:
            self._queue.append(item)
            self._update_depth()
            self._wake_one()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """Stop accepting work and release every pending ``get()``.  Idempotent."""
        if self._shutting_down:
            return
        self._shutting_down = True
        for _, handle in self._delayed.values():
            handle.cancel()
        self._delayed.clear()
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
        _log.debug("queue_shut_down", queue=self._name, dropped=len(self._queue))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fire_delayed(self, item: T) -> None:
        self._delayed.pop(item, None)
        self.add(item)

    def _wake_one(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return

    def _update_depth(self) -> None:
        queue_depth.labels(queue=self._name).set(len(self._queue))
