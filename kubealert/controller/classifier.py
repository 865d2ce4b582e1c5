"""Pure classification of a processed queue item into an Alert."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType

from kubealert.models.alerts import Alert
from kubealert.models.events import EventType, QueueItem, Reason, Status
from kubealert.models.resources import ObjectMetadata

BACKOFF = "Backoff"

# Status of Create alerts by resource type; anything else is Normal.
CREATE_STATUS: Mapping[str, Status] = MappingProxyType(
    {
        "NodeNotReady": Status.DANGER,
        "NodeReady": Status.NORMAL,
        "NodeRebooted": Status.DANGER,
        BACKOFF: Status.DANGER,
    }
)


def split_key(item: QueueItem) -> tuple[str, str]:
    """Return ``(namespace, name)`` for *item*.

    When the item carries no namespace and its key has the ``namespace/name``
    form, both parts come from the key.  Otherwise the key is the name.
    """
    if not item.namespace and "/" in item.key:
        namespace, _, name = item.key.partition("/")
        return namespace, name
    return item.namespace, item.key


def classify(
    item: QueueItem,
    metadata: ObjectMetadata,
    server_start_time: datetime,
    create_status: Mapping[str, Status] = CREATE_STATUS,
) -> Alert | None:
    """Map an item and its object's metadata to an Alert.

    Create events only alert for objects created after *server_start_time*,
    which keeps the initial list replay from flooding the sink.  Update
    alerts say that something changed, not what.
    """
    namespace, name = split_key(item)

    if item.event_type is EventType.CREATE:
        created = metadata.creation_timestamp
        if created is None or created <= server_start_time:
            return None
        return Alert(
            name=metadata.name,
            namespace=namespace,
            kind=item.resource_type,
            status=create_status.get(item.resource_type, Status.NORMAL),
            reason=Reason.CREATED,
        )

    if item.event_type is EventType.UPDATE:
        return Alert(
            name=name,
            namespace=namespace,
            kind=item.resource_type,
            status=Status.DANGER if item.resource_type == BACKOFF else Status.WARNING,
            reason=Reason.UPDATED,
        )

    return Alert(
        name=name,
        namespace=namespace,
        kind=item.resource_type,
        status=Status.DANGER,
        reason=Reason.DELETED,
    )
