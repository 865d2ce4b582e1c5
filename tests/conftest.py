"""Shared fixtures and factories for kubealert tests.

Provides a scriptable in-memory ListWatch, a recording alert sink and raw
object factories so controller and informer tests run without a cluster.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from kubealert.cache.informer import ObjectList, WatchEvent
from kubealert.models.alerts import Alert

# ---------------------------------------------------------------------------
# Timestamp helpers
# ---------------------------------------------------------------------------

SERVER_START = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)
BEFORE_START = SERVER_START - timedelta(hours=1)
AFTER_START = SERVER_START + timedelta(seconds=1)


# ---------------------------------------------------------------------------
# Object factories
# ---------------------------------------------------------------------------


def make_object(
    kind: str = "Pod",
    name: str = "my-app-7b4f8c6d-x2kj",
    namespace: str = "default",
    created: datetime | None = None,
    resource_version: str = "1",
    **extra: Any,
) -> dict[str, Any]:
    """Raw API object dict as found in a watch event's ``raw_object``."""
    metadata: dict[str, Any] = {
        "name": name,
        "resourceVersion": resource_version,
        "creationTimestamp": (created or BEFORE_START).isoformat().replace("+00:00", "Z"),
    }
    if namespace:
        metadata["namespace"] = namespace
    return {"kind": kind, "metadata": metadata, **extra}


def make_event_object(
    reason: str = "Backoff",
    name: str = "my-app.17a3f",
    namespace: str = "default",
    created: datetime | None = None,
    resource_version: str = "1",
) -> dict[str, Any]:
    return make_object(
        kind="Event",
        name=name,
        namespace=namespace,
        created=created,
        resource_version=resource_version,
        reason=reason,
        message=f"{reason} observed",
    )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class FakeListWatch:
    """ListWatch whose list result and watch stream are driven by the test.

    ``emit`` pushes a watch event, ``fail_watch`` makes the open stream raise,
    ``end_watch`` closes it.  ``list_error`` makes the next list calls raise;
    ``block_list`` makes them hang until cancelled.
    """

    def __init__(self, items: list[Any] | None = None, resource_version: str = "100") -> None:
        self.items: list[Any] = list(items or [])
        self.resource_version = resource_version
        self.list_calls = 0
        self.watch_calls: list[str] = []
        self.list_error: BaseException | None = None
        self.block_list = False
        self._events: asyncio.Queue[WatchEvent | BaseException | None] = asyncio.Queue()

    async def list(self) -> ObjectList:
        self.list_calls += 1
        if self.block_list:
            await asyncio.Event().wait()
        if self.list_error is not None:
            raise self.list_error
        return ObjectList(items=list(self.items), resource_version=self.resource_version)

    async def watch(self, resource_version: str) -> AsyncIterator[WatchEvent]:
        self.watch_calls.append(resource_version)
        while True:
            event = await self._events.get()
            if event is None:
                return
            if isinstance(event, BaseException):
                raise event
            yield event

    def emit(self, event_type: str, obj: Any) -> None:
        self._events.put_nowait(WatchEvent(type=event_type, obj=obj))

    def fail_watch(self, exc: BaseException) -> None:
        self._events.put_nowait(exc)

    def end_watch(self) -> None:
        self._events.put_nowait(None)


class RecordingSink:
    """Alert sink that keeps every alert it receives."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []

    def handle(self, alert: Alert) -> None:
        self.alerts.append(alert)


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Wait until *predicate* holds, failing the test after *timeout* seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(0.005)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def list_watch() -> FakeListWatch:
    return FakeListWatch()
