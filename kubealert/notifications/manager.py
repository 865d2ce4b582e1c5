"""Channel contract and the dispatcher that serves as the controllers' alert sink."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog

from kubealert.models.alerts import Alert
from kubealert.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.dispatcher")


class NotificationChannel(ABC):
    """One delivery target.  ``send`` reports failure by returning False."""

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Short label for logs and the ``channel`` metric label."""

    @abstractmethod
    async def send(self, alert: Alert) -> bool:
        """Deliver *alert*; True when the receiver accepted it."""


class NotificationDispatcher:
    """Alert sink that logs each alert and forwards it to every channel.

    ``handle`` is called from controller workers, so it only schedules the
    delivery and returns.  A channel that raises or rejects the alert is
    logged and counted; the other channels still receive it.  ``stop`` waits
    for deliveries that are still in flight.
    """

    def __init__(self, channels: list[NotificationChannel]) -> None:
        self._channels = list(channels)
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def channels(self) -> list[NotificationChannel]:
        return list(self._channels)

    def handle(self, alert: Alert) -> None:
        _log.info(
            "alert",
            kind=alert.kind,
            namespace=alert.namespace,
            name=alert.name,
            status=alert.status.value,
            reason=alert.reason.value,
        )
        if self._channels:
            delivery = asyncio.ensure_future(self._deliver(alert))
            self._in_flight.add(delivery)
            delivery.add_done_callback(self._in_flight.discard)

    async def stop(self) -> None:
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _deliver(self, alert: Alert) -> None:
        await asyncio.gather(*(self._deliver_to(channel, alert) for channel in self._channels))

    async def _deliver_to(self, channel: NotificationChannel, alert: Alert) -> None:
        name = channel.channel_name
        try:
            accepted = await channel.send(alert)
        except Exception as exc:  # noqa: BLE001
            _log.error("notification_channel_crashed", channel=name, error=str(exc), error_type=type(exc).__name__)
            accepted = False

        notifications_total.labels(channel=name, success=str(accepted).lower()).inc()
        if accepted:
            _log.debug("notification_delivered", channel=name, kind=alert.kind, name=alert.name)
        else:
            _log.warning("notification_not_delivered", channel=name, kind=alert.kind, name=alert.name)
