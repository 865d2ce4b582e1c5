"""Controller: turns informer notifications into classified alerts.

One controller watches one resource kind.  Informer handlers only compute a
key and add a QueueItem; workers pull items, look the key up in the
informer's store, extract metadata, classify and hand the alert to the sink.

Per item the worker ends in one of three states:
    done      -- processed (alert sent or suppressed); retry counter reset.
    requeued  -- transient failure; re-added after a rate-limited delay.
    given up  -- transient failure after max_retries requeues; reported and dropped.
Unexpected exceptions are reported as crashes and the item is dropped; the
worker keeps running and ``done()`` is always called.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

import structlog

from kubealert.cache.informer import Informer, ResourceEventHandlerFuncs, wait_for_cache_sync
from kubealert.cache.store import DeletedFinalStateUnknown, deletion_handling_key, meta_namespace_key
from kubealert.controller.classifier import CREATE_STATUS, classify
from kubealert.controller.metadata import get_object_metadata
from kubealert.errors import CacheLookupError, CacheSyncError, ProcessingError
from kubealert.models.alerts import Alert
from kubealert.models.events import EventType, QueueItem, Status
from kubealert.models.resources import ObjectMetadata, ResourceKind
from kubealert.observability.errors import handle_crash, handle_error
from kubealert.observability.metrics import alerts_total, work_duration_seconds
from kubealert.queue.workqueue import WorkQueue

MAX_RETRIES = 5


class AlertSink(Protocol):
    """Final consumer of alerts.  Delivery failures are the sink's own concern."""

    def handle(self, alert: Alert) -> None: ...


@dataclass(frozen=True)
class ControllerContext:
    """Process-wide settings shared by every controller; built once at startup."""

    server_start_time: datetime
    sink: AlertSink
    max_retries: int = MAX_RETRIES
    create_status: Mapping[str, Status] = field(default_factory=lambda: CREATE_STATUS)


class Controller:
    """Queue-driven worker loop for one resource kind.

    Args:
        kind:         Resource kind watched by *informer*.
        informer:     Source of change notifications and of the store used for lookups.
        context:      Start time, sink and retry policy.
        queue:        Work queue; defaults to one with the default rate limiter.
        sync_timeout: Seconds to wait for the initial list; None waits until stopped.
    """

    def __init__(
        self,
        kind: ResourceKind,
        informer: Informer,
        context: ControllerContext,
        queue: WorkQueue[QueueItem] | None = None,
        sync_timeout: float | None = None,
    ) -> None:
        self._kind = kind
        self._informer = informer
        self._context = context
        self._queue: WorkQueue[QueueItem] = queue or WorkQueue(name=kind.value)
        self._sync_timeout = sync_timeout
        self._log = structlog.get_logger(component="controller", kind=kind.value)

        informer.add_event_handler(
            ResourceEventHandlerFuncs(
                add_func=self._on_add,
                update_func=self._on_update,
                delete_func=self._on_delete,
            )
        )

    @property
    def kind(self) -> ResourceKind:
        return self._kind

    @property
    def queue(self) -> WorkQueue[QueueItem]:
        return self._queue

    @property
    def informer(self) -> Informer:
        return self._informer

    def has_synced(self) -> bool:
        return self._informer.has_synced()

    # ------------------------------------------------------------------
    # Informer handlers: compute a key and enqueue, nothing else
    # ------------------------------------------------------------------

    def _on_add(self, obj: Any) -> None:
        self._enqueue(obj, EventType.CREATE, meta_namespace_key)

    def _on_update(self, old: Any, new: Any) -> None:
        self._enqueue(new, EventType.UPDATE, meta_namespace_key)

    def _on_delete(self, obj: Any) -> None:
        self._enqueue(obj, EventType.DELETE, deletion_handling_key)

    def _enqueue(self, obj: Any, event_type: EventType, key_func: Callable[[Any], str]) -> None:
        try:
            key = key_func(obj)
        except ValueError as exc:
            self._log.debug("enqueue_skipped_no_key", event_type=event_type.value, error=str(exc))
            return
        self._queue.add(QueueItem(key=key, event_type=event_type, resource_type=self._resource_type(obj)))

    def _resource_type(self, obj: Any) -> str:
        """Kind name, or the event reason for core Events (e.g. ``NodeNotReady``)."""
        if self._kind is ResourceKind.EVENT:
            if isinstance(obj, DeletedFinalStateUnknown):
                obj = obj.obj
            reason = obj.get("reason") if isinstance(obj, dict) else getattr(obj, "reason", None)
            if reason:
                return str(reason)
        return self._kind.display_name

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self, stop: asyncio.Event, workers: int = 1) -> None:
        """Start the informer, wait for sync, then process items until *stop* is set.

        Raises:
            CacheSyncError: if the cache did not sync before the timeout.  The
                queue is shut down and no worker is started.
        """
        if stop.is_set():
            self._queue.shutdown()
            return

        self._log.info("controller_starting", workers=workers)
        informer_task = asyncio.create_task(self._informer.run(stop), name=f"informer-{self._kind.value}")
        worker_tasks: list[asyncio.Task[None]] = []
        try:
            synced = await wait_for_cache_sync(stop, self.has_synced, timeout=self._sync_timeout)
            if not synced:
                if stop.is_set():
                    self._log.info("controller_stopped_before_sync")
                    return
                exc = CacheSyncError(self._kind.value)
                handle_error(exc)
                raise exc

            self._log.info("controller_synced")
            worker_tasks = [
                asyncio.create_task(self._run_worker(), name=f"worker-{self._kind.value}-{i}")
                for i in range(workers)
            ]
            await stop.wait()
        finally:
            self._queue.shutdown()
            if worker_tasks:
                await asyncio.gather(*worker_tasks, return_exceptions=True)
            informer_task.cancel()
            await asyncio.gather(informer_task, return_exceptions=True)
            self._log.info("controller_stopped")

    async def _run_worker(self) -> None:
        while await self.process_next_item():
            # Yield so informer tasks run even when the queue never drains.
            await asyncio.sleep(0)

    async def process_next_item(self) -> bool:
        """Process one item.  Returns False once the queue has been shut down."""
        item, should_stop = await self._queue.get()
        if should_stop or item is None:
            return False

        start = time.perf_counter()
        try:
            try:
                self.process_item(item)
            except (CacheLookupError, ProcessingError) as exc:
                self._handle_transient_error(item, exc)
            else:
                self._queue.forget(item)
        except Exception as exc:  # noqa: BLE001
            self._queue.forget(item)
            handle_crash(exc)
        finally:
            self._queue.done(item)
            work_duration_seconds.labels(queue=self._queue.name).observe(time.perf_counter() - start)
        return True

    def _handle_transient_error(self, item: QueueItem, exc: Exception) -> None:
        attempts = self._queue.num_requeues(item)
        if attempts < self._context.max_retries:
            self._log.warning(
                "processing_failed_will_retry",
                key=item.key,
                event_type=item.event_type.value,
                attempt=attempts + 1,
                error=str(exc),
            )
            self._queue.add_rate_limited(item)
            return

        self._log.error(
            "processing_failed_giving_up",
            key=item.key,
            event_type=item.event_type.value,
            attempts=attempts,
            error=str(exc),
        )
        self._queue.forget(item)
        handle_error(exc)

    def process_item(self, item: QueueItem) -> None:
        """Look the key up, classify and emit.

        A key missing from the store is expected: the object may have been
        deleted since it was enqueued, and deletions are never in the store.

        Raises:
            CacheLookupError: the store could not answer for this key.
        """
        obj, exists = self._informer.indexer.get_by_key(item.key)
        metadata = get_object_metadata(obj) if exists else ObjectMetadata()

        alert = classify(item, metadata, self._context.server_start_time, self._context.create_status)
        if alert is None:
            self._log.debug("alert_suppressed", key=item.key, event_type=item.event_type.value)
            return

        alerts_total.labels(kind=alert.kind, status=alert.status.value, reason=alert.reason.value).inc()
        self._context.sink.handle(alert)
