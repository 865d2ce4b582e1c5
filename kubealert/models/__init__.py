"""Core data structures for kubealert."""

from kubealert.models.alerts import Alert
from kubealert.models.config import KubeAlertConfig
from kubealert.models.events import EventType, QueueItem, Reason, Status
from kubealert.models.resources import ObjectMetadata, ResourceKind

__all__ = [
    "Alert",
    "EventType",
    "KubeAlertConfig",
    "ObjectMetadata",
    "QueueItem",
    "Reason",
    "ResourceKind",
    "Status",
]
