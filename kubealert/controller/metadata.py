"""Metadata extraction over the closed set of supported resource kinds.

``resource_kind_of`` maps an object to its ResourceKind, or None for anything
outside the supported set.  ``get_object_metadata`` is total: unrecognised
objects yield the zero ObjectMetadata, which the classifier treats as
"not newer than server start".
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

from kubealert.cache.store import DeletedFinalStateUnknown, object_name, object_namespace
from kubealert.models.resources import ObjectMetadata, ResourceKind

# kubernetes-asyncio model classes are named V1Pod, V1beta1Ingress, CoreV1Event, ...
_RE_MODEL_PREFIX = re.compile(r"^(?:Core|Events)?V\d+(?:(?:alpha|beta)\d+)?")


def resource_kind_of(obj: Any) -> ResourceKind | None:
    """Return the supported kind of *obj*, or None."""
    if isinstance(obj, DeletedFinalStateUnknown):
        obj = obj.obj
    if isinstance(obj, dict):
        kind_name = str(obj.get("kind") or "")
    else:
        kind_name = _RE_MODEL_PREFIX.sub("", type(obj).__name__)
    try:
        return ResourceKind(kind_name.lower())
    except ValueError:
        return None


def get_object_metadata(obj: Any) -> ObjectMetadata:
    """Project *obj* onto ObjectMetadata; zero value when the kind is not supported."""
    if isinstance(obj, DeletedFinalStateUnknown):
        obj = obj.obj
    if obj is None or resource_kind_of(obj) is None:
        return ObjectMetadata()
    return ObjectMetadata(
        name=object_name(obj),
        namespace=object_namespace(obj),
        creation_timestamp=_creation_timestamp(obj),
    )


def _creation_timestamp(obj: Any) -> datetime | None:
    if isinstance(obj, dict):
        value = (obj.get("metadata") or {}).get("creationTimestamp")
    else:
        value = getattr(getattr(obj, "metadata", None), "creation_timestamp", None)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    # API timestamps are UTC; treat naive values the same way.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
