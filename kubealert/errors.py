"""Exception hierarchy for kubealert."""

from __future__ import annotations


class KubeAlertError(Exception):
    """Base class for all kubealert errors."""


class CacheLookupError(KubeAlertError):
    """The resource cache could not answer a lookup (as opposed to "not found")."""

    def __init__(self, key: str, cause: str) -> None:
        super().__init__(f"Error fetching object with key {key!r} from store: {cause}")
        self.key = key


class CacheSyncError(KubeAlertError):
    """Caches did not finish their initial list before the deadline or stop."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Timed out waiting for {kind} caches to sync")
        self.kind = kind


class ProcessingError(KubeAlertError):
    """Transient failure while processing a queue item; subject to retry."""


class WatchExpiredError(KubeAlertError):
    """The watch resource version is too old (HTTP 410 Gone); a relist is required."""
