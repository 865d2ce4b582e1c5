"""Slack notification channel for kubealert (incoming webhook)."""

from __future__ import annotations

import httpx
import structlog

from kubealert.models.alerts import Alert
from kubealert.models.events import Status
from kubealert.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.slack")

# Slack attachment colour names.
_STATUS_COLOR: dict[Status, str] = {
    Status.NORMAL: "good",
    Status.WARNING: "warning",
    Status.DANGER: "danger",
}


class SlackNotificationChannel(NotificationChannel):
    """Posts one attachment per alert to a Slack incoming webhook.

    Args:
        webhook_url: ``https://hooks.slack.com/services/...`` URL.
        timeout:     HTTP request timeout in seconds.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0) -> None:
        if not webhook_url.startswith("https://"):
            raise ValueError("Slack webhook_url must be an https:// URL")
        self._webhook_url = webhook_url
        self._timeout = timeout

    @property
    def channel_name(self) -> str:
        return "slack"

    async def send(self, alert: Alert) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._webhook_url, json=self._build_payload(alert))
        except httpx.HTTPError as exc:
            _log.warning("slack_http_error", error=str(exc))
            return False
        if not response.is_success:
            _log.warning("slack_non_2xx_response", status_code=response.status_code, body=response.text[:200])
            return False
        return True

    def _build_payload(self, alert: Alert) -> dict[str, object]:
        return {
            "attachments": [
                {
                    "color": _STATUS_COLOR.get(alert.status, "good"),
                    "title": f"{alert.kind} {alert.reason.value.lower()}",
                    "text": alert.message(),
                    "fields": [
                        {"title": "Namespace", "value": alert.namespace or "-", "short": True},
                        {"title": "Status", "value": alert.status.value, "short": True},
                    ],
                    "footer": "kubealert",
                }
            ]
        }
