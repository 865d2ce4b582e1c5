"""Cache layer for kubealert.

Provides an in-memory, watch-synchronised mirror of cluster objects.

Submodules:
    store     -- Indexer (key -> object store with a namespace index) and key functions.
    informer  -- Informer: list + watch driver that keeps an Indexer current and
                 announces every change to registered event handlers.
"""

from kubealert.cache.informer import (
    Informer,
    ListWatch,
    ObjectList,
    ResourceEventHandler,
    ResourceEventHandlerFuncs,
    WatchEvent,
    wait_for_cache_sync,
)
from kubealert.cache.store import (
    DeletedFinalStateUnknown,
    Indexer,
    deletion_handling_key,
    meta_namespace_key,
    split_meta_namespace_key,
)

__all__ = [
    "DeletedFinalStateUnknown",
    "Indexer",
    "Informer",
    "ListWatch",
    "ObjectList",
    "ResourceEventHandler",
    "ResourceEventHandlerFuncs",
    "WatchEvent",
    "deletion_handling_key",
    "meta_namespace_key",
    "split_meta_namespace_key",
    "wait_for_cache_sync",
]
