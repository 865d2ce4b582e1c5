"""Core event data structures and enumerations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class EventType(StrEnum):
    """Lifecycle transition observed by an informer."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Status(StrEnum):
    """Alert severity as rendered by notification channels."""

    NORMAL = "Normal"
    WARNING = "Warning"
    DANGER = "Danger"


class Reason(StrEnum):
    """What happened to the resource."""

    CREATED = "Created"
    UPDATED = "Updated"
    DELETED = "Deleted"


@dataclass(frozen=True)
class QueueItem:
    """Unit of work placed on the controller queue.

    Hashable value type: the queue collapses equal items, so two events for
    the same key only dedup when the event type and resource type match too.
    """

    key: str
    event_type: EventType
    namespace: str = ""
    resource_type: str = ""
