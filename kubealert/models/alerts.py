"""Alert data structures."""

from __future__ import annotations

from dataclasses import dataclass

from kubealert.models.events import Reason, Status


@dataclass(frozen=True)
class Alert:
    """Emitted by the controller once per processed event, consumed by the alert sink."""

    name: str
    namespace: str
    kind: str
    status: Status
    reason: Reason

    def message(self) -> str:
        """Human-readable one-liner used by chat channels."""
        if self.namespace:
            return f"A `{self.kind}` in namespace `{self.namespace}` has been `{self.reason}`:\n`{self.name}`"
        return f"A `{self.kind}` has been `{self.reason}`:\n`{self.name}`"
