"""Alert delivery.

``NotificationDispatcher`` is the controllers' alert sink: it logs every
alert and fans it out to the configured channels (Slack, generic webhook)
in the background.

Channel URLs are secrets, so the configuration never holds them directly:
``KUBEALERT_NOTIFICATIONS_*_SECRET_REF`` names another environment variable
(typically populated from a Kubernetes Secret) that holds the URL.
"""

from __future__ import annotations

import os
from collections.abc import Callable

import structlog

from kubealert.models.config import NotificationConfig
from kubealert.notifications.manager import NotificationChannel, NotificationDispatcher
from kubealert.notifications.slack import SlackNotificationChannel
from kubealert.notifications.webhook import WebhookNotificationChannel

_log = structlog.get_logger(component="notifications")

__all__ = [
    "NotificationChannel",
    "NotificationDispatcher",
    "SlackNotificationChannel",
    "WebhookNotificationChannel",
    "build_notification_dispatcher",
]


def build_notification_dispatcher(config: NotificationConfig) -> NotificationDispatcher:
    """Dispatcher with one channel per secret ref that resolves to a usable URL."""
    candidates: list[tuple[str, str, Callable[[str], NotificationChannel]]] = [
        ("slack", config.slack_secret_ref, lambda url: SlackNotificationChannel(webhook_url=url)),
        ("webhook", config.webhook_secret_ref, lambda url: WebhookNotificationChannel(url=url)),
    ]
    channels: list[NotificationChannel] = []
    for name, ref, factory in candidates:
        if not ref:
            continue
        url = os.environ.get(ref, "")
        if not url:
            _log.warning("notification_secret_empty", channel=name, secret_ref=ref)
            continue
        try:
            channels.append(factory(url))
        except ValueError as exc:
            _log.warning("notification_channel_rejected", channel=name, reason=str(exc))
            continue
        _log.info("notification_channel_enabled", channel=name)

    if not channels:
        _log.info("notification_channels_none", detail="alerts are only logged")
    return NotificationDispatcher(channels=channels)
