"""Unit tests for kubealert.notifications."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from kubealert.models.alerts import Alert
from kubealert.models.config import NotificationConfig
from kubealert.models.events import Reason, Status
from kubealert.notifications import (
    NotificationChannel,
    NotificationDispatcher,
    SlackNotificationChannel,
    WebhookNotificationChannel,
    build_notification_dispatcher,
)
from kubealert.notifications.webhook import build_payload

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _alert(status: Status = Status.DANGER, reason: Reason = Reason.DELETED, namespace: str = "shop") -> Alert:
    return Alert(name="web-0", namespace=namespace, kind="Pod", status=status, reason=reason)


class _RecordingChannel(NotificationChannel):
    def __init__(self, name: str = "recording", result: bool = True, exc: Exception | None = None) -> None:
        self._name = name
        self._result = result
        self._exc = exc
        self.sent: list[Alert] = []

    @property
    def channel_name(self) -> str:
        return self._name

    async def send(self, alert: Alert) -> bool:
        if self._exc is not None:
            raise self._exc
        self.sent.append(alert)
        return self._result


def _mock_async_client(response: MagicMock | None = None, exc: Exception | None = None) -> tuple[MagicMock, MagicMock]:
    client = MagicMock()
    client.post = AsyncMock(return_value=response, side_effect=exc)
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=client)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx, client


def _response(status_code: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.text = "nope"
    if not response.is_success:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=MagicMock(), response=response
        )
    return response


# ---------------------------------------------------------------------------
# Alert rendering
# ---------------------------------------------------------------------------


class TestAlertMessage:
    def test_namespaced(self) -> None:
        assert _alert().message() == "A `Pod` in namespace `shop` has been `Deleted`:\n`web-0`"

    def test_cluster_scoped(self) -> None:
        alert = Alert(name="worker-1", namespace="", kind="Node", status=Status.DANGER, reason=Reason.DELETED)
        assert alert.message() == "A `Node` has been `Deleted`:\n`worker-1`"


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class TestNotificationDispatcher:
    async def test_fans_out_to_every_channel(self) -> None:
        first, second = _RecordingChannel("first"), _RecordingChannel("second")
        dispatcher = NotificationDispatcher(channels=[first, second])
        dispatcher.handle(_alert())
        await dispatcher.stop()
        assert first.sent == [_alert()]
        assert second.sent == [_alert()]

    async def test_failing_channel_does_not_block_others(self) -> None:
        broken = _RecordingChannel("broken", exc=RuntimeError("down"))
        rejecting = _RecordingChannel("rejecting", result=False)
        healthy = _RecordingChannel("healthy")
        dispatcher = NotificationDispatcher(channels=[broken, rejecting, healthy])
        dispatcher.handle(_alert())
        await dispatcher.stop()
        assert healthy.sent == [_alert()]

    async def test_handle_does_not_wait_for_delivery(self) -> None:
        gate = asyncio.Event()

        class _SlowChannel(_RecordingChannel):
            async def send(self, alert: Alert) -> bool:
                await gate.wait()
                return await super().send(alert)

        slow = _SlowChannel("slow")
        dispatcher = NotificationDispatcher(channels=[slow])
        dispatcher.handle(_alert())
        assert slow.sent == []
        gate.set()
        await dispatcher.stop()
        assert slow.sent == [_alert()]

    def test_no_channels_only_logs(self) -> None:
        dispatcher = NotificationDispatcher(channels=[])
        dispatcher.handle(_alert())
        assert dispatcher.channels == []


# ---------------------------------------------------------------------------
# Webhook channel
# ---------------------------------------------------------------------------


class TestWebhookChannel:
    def test_payload(self) -> None:
        assert build_payload(_alert()) == {
            "name": "web-0",
            "namespace": "shop",
            "kind": "Pod",
            "status": "Danger",
            "reason": "Deleted",
            "text": "A `Pod` in namespace `shop` has been `Deleted`:\n`web-0`",
        }

    def test_empty_url_rejected(self) -> None:
        with pytest.raises(ValueError):
            WebhookNotificationChannel(url="")

    async def test_send_posts_json(self) -> None:
        ctx, client = _mock_async_client(response=_response(204))
        channel = WebhookNotificationChannel(url="https://hooks.example.com/k8s", headers={"Authorization": "Bearer t"})
        with patch("kubealert.notifications.webhook.httpx.AsyncClient", return_value=ctx) as client_cls:
            assert await channel.send(_alert()) is True
        assert client.post.call_args.kwargs["json"]["reason"] == "Deleted"
        assert client_cls.call_args.kwargs["headers"] == {"Authorization": "Bearer t"}

    async def test_non_2xx_is_failure(self) -> None:
        ctx, _ = _mock_async_client(response=_response(500))
        channel = WebhookNotificationChannel(url="https://hooks.example.com/k8s")
        with patch("kubealert.notifications.webhook.httpx.AsyncClient", return_value=ctx):
            assert await channel.send(_alert()) is False

    async def test_timeout_is_failure(self) -> None:
        ctx, _ = _mock_async_client(exc=httpx.ReadTimeout("slow"))
        channel = WebhookNotificationChannel(url="https://hooks.example.com/k8s")
        with patch("kubealert.notifications.webhook.httpx.AsyncClient", return_value=ctx):
            assert await channel.send(_alert()) is False


# ---------------------------------------------------------------------------
# Slack channel
# ---------------------------------------------------------------------------


class TestSlackChannel:
    def test_requires_https(self) -> None:
        with pytest.raises(ValueError):
            SlackNotificationChannel(webhook_url="http://hooks.slack.com/services/x")

    @pytest.mark.parametrize(
        ("status", "color"),
        [(Status.NORMAL, "good"), (Status.WARNING, "warning"), (Status.DANGER, "danger")],
    )
    def test_attachment_colour_follows_status(self, status: Status, color: str) -> None:
        channel = SlackNotificationChannel(webhook_url="https://hooks.slack.com/services/x")
        attachment = channel._build_payload(_alert(status=status))["attachments"][0]  # type: ignore[index]
        assert attachment["color"] == color
        assert attachment["text"] == _alert(status=status).message()

    async def test_http_error_is_failure(self) -> None:
        ctx, _ = _mock_async_client(exc=httpx.ConnectError("refused"))
        channel = SlackNotificationChannel(webhook_url="https://hooks.slack.com/services/x")
        with patch("kubealert.notifications.slack.httpx.AsyncClient", return_value=ctx):
            assert await channel.send(_alert()) is False

    async def test_success(self) -> None:
        ctx, client = _mock_async_client(response=_response(200))
        channel = SlackNotificationChannel(webhook_url="https://hooks.slack.com/services/x")
        with patch("kubealert.notifications.slack.httpx.AsyncClient", return_value=ctx):
            assert await channel.send(_alert()) is True
        assert client.post.call_args.args[0] == "https://hooks.slack.com/services/x"


# ---------------------------------------------------------------------------
# build_notification_dispatcher
# ---------------------------------------------------------------------------


class TestBuildNotificationDispatcher:
    def test_no_refs_means_no_channels(self) -> None:
        assert build_notification_dispatcher(NotificationConfig()).channels == []

    def test_channels_enabled_from_secret_refs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SLACK_URL", "https://hooks.slack.com/services/x")
        monkeypatch.setenv("HOOK_URL", "https://hooks.example.com/k8s")
        dispatcher = build_notification_dispatcher(
            NotificationConfig(slack_secret_ref="SLACK_URL", webhook_secret_ref="HOOK_URL")
        )
        assert sorted(c.channel_name for c in dispatcher.channels) == ["slack", "webhook"]

    def test_empty_secret_skips_channel(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SLACK_URL", raising=False)
        dispatcher = build_notification_dispatcher(NotificationConfig(slack_secret_ref="SLACK_URL"))
        assert dispatcher.channels == []

    def test_invalid_slack_url_disables_channel(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SLACK_URL", "http://insecure")
        dispatcher = build_notification_dispatcher(NotificationConfig(slack_secret_ref="SLACK_URL"))
        assert dispatcher.channels == []
