"""In-memory indexed store mirroring cluster objects by key.

Objects are either kubernetes-asyncio model instances (``obj.metadata.name``)
or raw dicts (``obj["metadata"]["name"]``); both shapes are accepted
everywhere in this module.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from kubealert.errors import CacheLookupError

NAMESPACE_INDEX = "namespace"

IndexFunc = Callable[[Any], list[str]]


@dataclass(frozen=True)
class DeletedFinalStateUnknown:
    """Tombstone for an object that vanished between two lists.

    The informer emits it to delete handlers when a relist no longer contains
    an object it had seen, because the actual DELETED watch event was missed.
    ``obj`` is the last known state.
    """

    key: str
    obj: Any


def _metadata_field(obj: Any, field: str) -> str:
    meta = obj.get("metadata") if isinstance(obj, dict) else getattr(obj, "metadata", None)
    if meta is None:
        return ""
    value = meta.get(field) if isinstance(meta, dict) else getattr(meta, field, None)
    return str(value) if value else ""


def object_name(obj: Any) -> str:
    return _metadata_field(obj, "name")


def object_namespace(obj: Any) -> str:
    return _metadata_field(obj, "namespace")


def object_resource_version(obj: Any) -> str:
    return _metadata_field(obj, "resourceVersion") or _metadata_field(obj, "resource_version")


def meta_namespace_key(obj: Any) -> str:
    """Return ``namespace/name``, or ``name`` for cluster-scoped objects.

    Raises:
        ValueError: if the object carries no name.
    """
    name = object_name(obj)
    if not name:
        raise ValueError(f"object has no metadata.name: {type(obj).__name__}")
    namespace = object_namespace(obj)
    return f"{namespace}/{name}" if namespace else name


def deletion_handling_key(obj: Any) -> str:
    """Like ``meta_namespace_key`` but also accepts tombstones."""
    if isinstance(obj, DeletedFinalStateUnknown):
        return obj.key
    return meta_namespace_key(obj)


def split_meta_namespace_key(key: str) -> tuple[str, str]:
    """Split a cache key into ``(namespace, name)``.

    Raises:
        ValueError: for empty keys, keys with more than one ``/`` or empty parts.
    """
    parts = key.split("/")
    if len(parts) == 1 and parts[0]:
        return "", parts[0]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise ValueError(f"unexpected key format: {key!r}")


def namespace_index_func(obj: Any) -> list[str]:
    return [object_namespace(obj)]


class Indexer:
    """Key -> object store with secondary indices.

    Indices map an index value (e.g. a namespace) to the set of keys whose
    object produced that value.  The namespace index is always present.
    """

    def __init__(
        self,
        key_func: Callable[[Any], str] = meta_namespace_key,
        indexers: dict[str, IndexFunc] | None = None,
    ) -> None:
        self._key_func = key_func
        self._items: dict[str, Any] = {}
        self._indexers: dict[str, IndexFunc] = {NAMESPACE_INDEX: namespace_index_func}
        if indexers:
            self._indexers.update(indexers)
        self._indices: dict[str, dict[str, set[str]]] = {name: {} for name in self._indexers}

    def __len__(self) -> int:
        return len(self._items)

    def key_of(self, obj: Any) -> str:
        return self._key_func(obj)

    def add(self, obj: Any) -> None:
        key = self._key_func(obj)
        old = self._items.get(key)
        self._items[key] = obj
        self._update_indices(old, obj, key)

    update = add

    def delete(self, obj: Any) -> None:
        key = deletion_handling_key(obj)
        old = self._items.pop(key, None)
        if old is not None:
            self._update_indices(old, None, key)

    def replace(self, objs: Iterable[Any]) -> None:
        """Swap the whole contents for *objs* and rebuild every index."""
        self._items = {self._key_func(obj): obj for obj in objs}
        self._indices = {name: {} for name in self._indexers}
        for key, obj in self._items.items():
            self._update_indices(None, obj, key)

    def get(self, obj: Any) -> tuple[Any | None, bool]:
        return self.get_by_key(self._key_func(obj))

    def get_by_key(self, key: str) -> tuple[Any | None, bool]:
        """Return ``(obj, exists)``.

        Raises:
            CacheLookupError: if *key* is not a valid cache key.
        """
        try:
            split_meta_namespace_key(key)
        except ValueError as exc:
            raise CacheLookupError(key, str(exc)) from exc
        obj = self._items.get(key)
        return obj, obj is not None

    def list(self) -> list[Any]:
        return list(self._items.values())

    def list_keys(self) -> list[str]:
        return list(self._items)

    def snapshot(self) -> dict[str, Any]:
        """Shallow copy of the key -> object mapping."""
        return dict(self._items)

    def by_index(self, index_name: str, value: str) -> list[Any]:
        if index_name not in self._indices:
            raise KeyError(f"index {index_name!r} does not exist")
        keys = self._indices[index_name].get(value, set())
        return [self._items[key] for key in sorted(keys)]

    def _update_indices(self, old: Any | None, new: Any | None, key: str) -> None:
        for name, index_func in self._indexers.items():
            index = self._indices[name]
            if old is not None:
                for value in index_func(old):
                    keys = index.get(value)
                    if keys is not None:
                        keys.discard(key)
                        if not keys:
                            del index[value]
            if new is not None:
                for value in index_func(new):
                    index.setdefault(value, set()).add(key)
