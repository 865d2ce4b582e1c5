"""Typed configuration, populated by ``kubealert.config.load_config``."""

from __future__ import annotations

from dataclasses import dataclass, field

from kubealert.models.resources import ResourceKind


@dataclass
class WatchConfig:
    """Which resources to watch and where."""

    resources: list[ResourceKind] = field(default_factory=lambda: list(ResourceKind))
    namespace: str = ""  # empty means all namespaces


@dataclass
class ControllerConfig:
    """Worker and retry policy for every controller."""

    max_retries: int = 5
    workers: int = 1
    sync_timeout_seconds: int = 120  # 0 waits forever


@dataclass
class QueueConfig:
    """Rate limiter parameters for requeued items."""

    base_delay_seconds: float = 0.005
    max_delay_seconds: float = 1000.0
    qps: float = 10.0
    burst: int = 100


@dataclass
class NotificationConfig:
    """Names of the environment variables that hold channel URLs; empty disables the channel."""

    slack_secret_ref: str = ""
    webhook_secret_ref: str = ""


@dataclass
class APIConfig:
    """Port of the health, status and metrics endpoint."""

    port: int = 8080


@dataclass
class LogConfig:
    """structlog level and renderer."""

    level: str = "info"
    format: str = "json"  # "json" or "console"


@dataclass
class KubeAlertConfig:
    """Everything one kubealert process needs to run."""

    watch: WatchConfig = field(default_factory=WatchConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
