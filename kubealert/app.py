"""Process bootstrap for kubealert.

``KubeAlertApp`` builds the pieces in this order and tears them down in the
opposite one:

    config -> logging -> cluster client -> alert sink -> controllers -> HTTP API

Mandatory pieces (config, cluster client, controllers, HTTP API) abort the
start with ``_ComponentError``; the alert sink degrades to log-only.  Once
running, a controller that exits with an error (its cache never synced) is
fatal: the whole process stops and exits with status 1.
"""

from __future__ import annotations

import asyncio
import signal
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from kubealert.config import load_config
from kubealert.controller import Controller, ControllerContext
from kubealert.models.config import KubeAlertConfig
from kubealert.notifications import NotificationDispatcher
from kubealert.observability.logging import get_logger, setup_logging

if TYPE_CHECKING:
    import structlog

# Upper bound for each teardown step.
_STOP_TIMEOUT_S = 15


class _ComponentError(Exception):
    """A mandatory component could not be brought up."""

    def __init__(self, component: str, cause: BaseException) -> None:
        super().__init__(f"{component} unavailable: {cause}")
        self.component = component
        self.cause = cause


class KubeAlertApp:
    """Owns the controllers and their collaborators for one process.

    Args:
        config: Ready-made configuration; read from ``KUBEALERT_*`` when None.
    """

    def __init__(self, config: KubeAlertConfig | None = None) -> None:
        self.config = config
        self.server_start_time: datetime | None = None
        self.fatal_error: BaseException | None = None

        self._api_client: Any = None
        self._sink: NotificationDispatcher | None = None
        self._controllers: list[Controller] = []
        self._controller_tasks: list[asyncio.Task[None]] = []
        self._http_server: Any = None
        self._http_task: asyncio.Task[None] | None = None

        self._stop = asyncio.Event()
        self._running = False
        self._stopped = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def controllers(self) -> list[Controller]:
        return list(self._controllers)

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Bring every component up.

        Raises:
            _ComponentError: a mandatory component failed; nothing is left running
                that ``stop()`` cannot clean up.
        """
        if self.config is None:
            try:
                self.config = load_config()
            except ValueError as exc:
                raise _ComponentError("config", exc) from exc

        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("kubealert_starting", version=_version(), kinds=len(self.config.watch.resources))

        # Objects created before this instant are initial-list replay, not news.
        self.server_start_time = datetime.now(tz=UTC)

        self._api_client = await self._connect_cluster()
        self._sink = self._build_sink()
        self._controllers = self._build_controllers()
        self._launch_controllers()
        self._serve_api()

        self._running = True
        self._log.info("kubealert_started", port=self.config.api.port)

    async def _connect_cluster(self) -> Any:
        """Return an ApiClient configured from the pod's service account, else kubeconfig."""
        assert self._log is not None
        try:
            from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
            from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]

            try:
                k8s_config.load_incluster_config()
                source = "in_cluster"
            except k8s_config.ConfigException:
                await k8s_config.load_kube_config()
                source = "kubeconfig"
            self._log.info("cluster_client_configured", source=source)
            return k8s_client.ApiClient()
        except Exception as exc:
            raise _ComponentError("cluster client", exc) from exc

    def _build_sink(self) -> NotificationDispatcher:
        """Alert sink with whatever channels are configured; log-only on failure."""
        assert self._log is not None and self.config is not None
        from kubealert.notifications import build_notification_dispatcher

        try:
            return build_notification_dispatcher(self.config.notifications)
        except Exception as exc:  # noqa: BLE001
            self._log.warning("notification_setup_failed", error=str(exc))
            return NotificationDispatcher(channels=[])

    def _build_controllers(self) -> list[Controller]:
        """One list/watch, informer, queue and controller per configured kind."""
        assert self.config is not None and self._sink is not None and self.server_start_time is not None
        from kubealert.cache import Informer
        from kubealert.collector import build_list_watch
        from kubealert.queue import WorkQueue, default_controller_rate_limiter

        settings = self.config.controller
        limits = self.config.queue
        context = ControllerContext(
            server_start_time=self.server_start_time,
            sink=self._sink,
            max_retries=settings.max_retries,
        )
        controllers: list[Controller] = []
        try:
            for kind in self.config.watch.resources:
                informer = Informer(build_list_watch(kind, self._api_client, self.config.watch.namespace), kind.value)
                queue = WorkQueue(
                    default_controller_rate_limiter(
                        limits.base_delay_seconds, limits.max_delay_seconds, limits.qps, limits.burst
                    ),
                    name=kind.value,
                )
                controllers.append(
                    Controller(kind, informer, context, queue=queue, sync_timeout=settings.sync_timeout_seconds or None)
                )
        except Exception as exc:
            raise _ComponentError("controllers", exc) from exc
        return controllers

    def _launch_controllers(self) -> None:
        assert self.config is not None
        for controller in self._controllers:
            task = asyncio.create_task(
                controller.run(self._stop, workers=self.config.controller.workers),
                name=f"controller-{controller.kind.value}",
            )
            task.add_done_callback(self._on_controller_done)
            self._controller_tasks.append(task)

    def _on_controller_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        exc = task.exception()
        self.fatal_error = self.fatal_error or exc
        (self._log or get_logger("app")).critical("controller_failed", task=task.get_name(), error=str(exc))
        self.request_shutdown()

    def _serve_api(self) -> None:
        """Run uvicorn in a background task; structlog owns all log output."""
        assert self.config is not None
        try:
            import uvicorn

            from kubealert.api import create_app

            server = uvicorn.Server(
                uvicorn.Config(
                    create_app(self._controllers, self.server_start_time),
                    host="0.0.0.0",
                    port=self.config.api.port,
                    log_config=None,
                    access_log=False,
                )
            )
            self._http_task = asyncio.create_task(server.serve(), name="http-api")
            self._http_server = server
        except Exception as exc:
            raise _ComponentError("http api", exc) from exc

    # ------------------------------------------------------------------
    # Stop
    # ------------------------------------------------------------------

    def request_shutdown(self) -> None:
        """Ask every controller to stop; safe to call from a signal handler."""
        self._running = False
        self._stop.set()

    async def wait(self) -> None:
        """Block until shutdown has been requested."""
        await self._stop.wait()

    async def stop(self) -> None:
        """Tear down in reverse start order.  Idempotent, and a no-op if never started."""
        if self._stopped or self._log is None:
            return
        self._stopped = True
        self._log.info("kubealert_stopping")
        self.request_shutdown()

        if self._http_server is not None:
            self._http_server.should_exit = True

        await self._drain_controllers()
        await self._cancel(self._http_task)
        await self._close("sink", self._sink.stop() if self._sink is not None else None)
        await self._close("cluster client", self._api_client.close() if self._api_client is not None else None)
        self._api_client = None

        self._log.info("kubealert_stopped")

    async def _drain_controllers(self) -> None:
        """Give in-flight items a bounded time to finish, then cancel stragglers."""
        assert self._log is not None
        if not self._controller_tasks:
            return
        _, pending = await asyncio.wait(self._controller_tasks, timeout=_STOP_TIMEOUT_S)
        for task in pending:
            self._log.warning("controller_stop_timeout", task=task.get_name(), timeout_s=_STOP_TIMEOUT_S)
            await self._cancel(task)
        self._controller_tasks.clear()

    @staticmethod
    async def _cancel(task: asyncio.Task[None] | None) -> None:
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _close(self, name: str, closing: Any) -> None:
        """Await one teardown coroutine; its failure is logged, never raised."""
        assert self._log is not None
        if closing is None:
            return
        try:
            await asyncio.wait_for(closing, timeout=_STOP_TIMEOUT_S)
        except TimeoutError:
            self._log.warning("component_close_timeout", component=name, timeout_s=_STOP_TIMEOUT_S)
        except Exception as exc:  # noqa: BLE001
            self._log.warning("component_close_failed", component=name, error=str(exc))


def _version() -> str:
    from kubealert import __version__

    return __version__


# ---------------------------------------------------------------------------
# Process entrypoint
# ---------------------------------------------------------------------------


async def main(config: KubeAlertConfig | None = None) -> None:
    """Run kubealert until SIGTERM/SIGINT or a fatal controller error."""
    app = KubeAlertApp(config)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_shutdown)

    try:
        await app.start()
        await app.wait()
    except _ComponentError as exc:
        get_logger("app").critical("startup_failed", component=exc.component, error=str(exc.cause))
        raise SystemExit(1) from exc
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        await app.stop()

    if app.fatal_error is not None:
        raise SystemExit(1) from app.fatal_error
