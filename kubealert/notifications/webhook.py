"""Webhook channel: POSTs each alert as a flat JSON document.

Payload keys are ``name``, ``namespace``, ``kind``, ``status``, ``reason``
and ``text`` (the rendered one-line message).
"""

from __future__ import annotations

import httpx
import structlog

from kubealert.models.alerts import Alert
from kubealert.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.webhook")


def build_payload(alert: Alert) -> dict[str, str]:
    return {
        "name": alert.name,
        "namespace": alert.namespace,
        "kind": alert.kind,
        "status": alert.status.value,
        "reason": alert.reason.value,
        "text": alert.message(),
    }


class WebhookNotificationChannel(NotificationChannel):
    """Generic HTTP receiver.

    Args:
        url:     Receiver endpoint.
        headers: Sent with every request, e.g. ``Authorization``.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, url: str, headers: dict[str, str] | None = None, timeout: float = 10.0) -> None:
        if not url:
            raise ValueError("Webhook url must not be empty")
        self._url = url
        self._headers = dict(headers or {})
        self._timeout = timeout

    @property
    def channel_name(self) -> str:
        return "webhook"

    async def send(self, alert: Alert) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, headers=self._headers) as client:
                response = await client.post(self._url, json=build_payload(alert))
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            _log.warning(
                "webhook_rejected",
                status_code=exc.response.status_code,
                kind=alert.kind,
                name=alert.name,
            )
            return False
        except httpx.HTTPError as exc:
            _log.warning("webhook_unreachable", error=str(exc), error_type=type(exc).__name__)
            return False
        return True
