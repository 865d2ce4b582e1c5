"""Informer: keeps an Indexer in step with a list/watch collaborator.

The informer lists every object once, replaces the store contents, marks
itself synced, then applies watch events from the list's resource version
onwards.  Every change to the store is announced to the registered event
handlers after the store has been updated, so a handler that looks the key
up again always sees the new state.

Failure handling:
    410 Gone           -- relist immediately.
    any other failure  -- exponential back-off (1 s doubling, 60 s cap), then relist.
A watch stream that simply ends is re-opened from the last seen resource
version without relisting.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import structlog

from kubealert.cache.store import (
    DeletedFinalStateUnknown,
    IndexFunc,
    Indexer,
    object_resource_version,
)
from kubealert.errors import WatchExpiredError
from kubealert.observability.errors import handle_crash
from kubealert.observability.metrics import cache_synced

_BACKOFF_MIN_S = 1.0
_BACKOFF_MAX_S = 60.0


@dataclass
class ObjectList:
    """Result of a list call: the objects plus the collection's resource version."""

    items: list[Any] = field(default_factory=list)
    resource_version: str = ""


@dataclass(frozen=True)
class WatchEvent:
    """One change from a watch stream.  ``type`` is ADDED, MODIFIED, DELETED or BOOKMARK."""

    type: str
    obj: Any


class ListWatch(Protocol):
    """Cluster-watch collaborator contract."""

    async def list(self) -> ObjectList: ...

    def watch(self, resource_version: str) -> AsyncIterator[WatchEvent]: ...


class ResourceEventHandler(Protocol):
    """Receives store changes.  Implementations must return quickly and never block."""

    def on_add(self, obj: Any) -> None: ...

    def on_update(self, old: Any, new: Any) -> None: ...

    def on_delete(self, obj: Any) -> None: ...


@dataclass
class ResourceEventHandlerFuncs:
    """Adapts plain callables to ResourceEventHandler; unset callbacks are ignored."""

    add_func: Callable[[Any], None] | None = None
    update_func: Callable[[Any, Any], None] | None = None
    delete_func: Callable[[Any], None] | None = None

    def on_add(self, obj: Any) -> None:
        if self.add_func is not None:
            self.add_func(obj)

    def on_update(self, old: Any, new: Any) -> None:
        if self.update_func is not None:
            self.update_func(old, new)

    def on_delete(self, obj: Any) -> None:
        if self.delete_func is not None:
            self.delete_func(obj)


class Informer:
    """Watch-synchronised local mirror of one resource kind.

    Args:
        list_watch: Supplies the initial list and the watch stream.
        name:       Kind label used in logs and metrics.
        indexers:   Extra secondary indices for the store.
    """

    def __init__(
        self,
        list_watch: ListWatch,
        name: str,
        indexers: dict[str, IndexFunc] | None = None,
    ) -> None:
        self._list_watch = list_watch
        self._name = name
        self._indexer = Indexer(indexers=indexers)
        self._handlers: list[ResourceEventHandler] = []
        self._synced = False
        self._needs_list = True
        self._resource_version = ""
        self._backoff_s = _BACKOFF_MIN_S
        self._log = structlog.get_logger(component="informer", kind=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def indexer(self) -> Indexer:
        return self._indexer

    @property
    def last_sync_resource_version(self) -> str:
        return self._resource_version

    def has_synced(self) -> bool:
        return self._synced

    def add_event_handler(self, handler: ResourceEventHandler) -> None:
        self._handlers.append(handler)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self, stop: asyncio.Event) -> None:
        """List and watch until *stop* is set."""
        if stop.is_set():
            return
        runner = asyncio.create_task(self._list_and_watch_forever(), name=f"informer-{self._name}")
        stopper = asyncio.create_task(stop.wait(), name=f"informer-{self._name}-stop")
        try:
            await asyncio.wait({runner, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (runner, stopper):
                task.cancel()
            await asyncio.gather(runner, stopper, return_exceptions=True)
            self._log.info("informer_stopped")

    async def _list_and_watch_forever(self) -> None:
        while True:
            try:
                if self._needs_list:
                    await self._list()
                    self._reset_backoff()
                await self._watch()
            except WatchExpiredError:
                self._log.info("watch_expired_relisting", resource_version=self._resource_version)
                self._needs_list = True
            except Exception as exc:  # noqa: BLE001
                self._log.warning("list_watch_failed", error=str(exc), backoff_s=self._backoff_s)
                self._needs_list = True
                await self._backoff()

    async def _backoff(self) -> None:
        await asyncio.sleep(self._backoff_s)
        self._backoff_s = min(self._backoff_s * 2, _BACKOFF_MAX_S)

    def _reset_backoff(self) -> None:
        self._backoff_s = _BACKOFF_MIN_S

    # ------------------------------------------------------------------
    # List / watch
    # ------------------------------------------------------------------

    async def _list(self) -> None:
        """Replace the store with a fresh list and announce the delta."""
        result = await self._list_watch.list()
        previous = self._indexer.snapshot()
        self._indexer.replace(result.items)

        for obj in result.items:
            key = self._indexer.key_of(obj)
            old = previous.pop(key, None)
            if old is None:
                self._notify("add", obj)
            elif _changed(old, obj):
                self._notify("update", old, obj)
        # Whatever remains was deleted while we were not watching.
        for key, old in previous.items():
            self._notify("delete", DeletedFinalStateUnknown(key=key, obj=old))

        self._resource_version = result.resource_version
        self._needs_list = False
        if not self._synced:
            self._synced = True
            cache_synced.labels(kind=self._name).set(1)
            self._log.info("informer_synced", objects=len(result.items))

    async def _watch(self) -> None:
        async for event in self._list_watch.watch(self._resource_version):
            if event.type == "BOOKMARK":
                self._resource_version = object_resource_version(event.obj) or self._resource_version
                continue
            if event.type in ("ADDED", "MODIFIED"):
                old, exists = self._indexer.get(event.obj)
                self._indexer.update(event.obj)
                if exists:
                    self._notify("update", old, event.obj)
                else:
                    self._notify("add", event.obj)
            elif event.type == "DELETED":
                self._indexer.delete(event.obj)
                self._notify("delete", event.obj)
            else:
                self._log.debug("watch_event_ignored", event_type=event.type)
                continue
            self._resource_version = object_resource_version(event.obj) or self._resource_version

    def _notify(self, action: str, *objs: Any) -> None:
        for handler in self._handlers:
            try:
                if action == "add":
                    handler.on_add(*objs)
                elif action == "update":
                    handler.on_update(*objs)
                else:
                    handler.on_delete(*objs)
            except Exception as exc:  # noqa: BLE001
                handle_crash(exc)


def _changed(old: Any, new: Any) -> bool:
    old_rv = object_resource_version(old)
    new_rv = object_resource_version(new)
    if old_rv and new_rv:
        return old_rv != new_rv
    return bool(old != new)


async def wait_for_cache_sync(
    stop: asyncio.Event,
    *synced_fns: Callable[[], bool],
    timeout: float | None = None,
    poll_interval: float = 0.1,
) -> bool:
    """Wait until every *synced_fns* returns True.

    Returns False if *stop* is set or *timeout* seconds pass first.
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout
    while True:
        if all(fn() for fn in synced_fns):
            return True
        if stop.is_set():
            return False
        if deadline is not None and loop.time() >= deadline:
            return False
        try:
            await asyncio.wait_for(stop.wait(), timeout=poll_interval)
        except TimeoutError:
            pass
