"""Build KubeAlertConfig from ``KUBEALERT_*`` environment variables.

Numeric settings are clamped to their allowed range; anything that cannot be
interpreted (a non-number, an unknown kind, log level or log format) raises
ValueError naming the offending variable.
"""

from __future__ import annotations

import os
from collections.abc import Collection

from kubealert.models.config import (
    APIConfig,
    ControllerConfig,
    KubeAlertConfig,
    LogConfig,
    NotificationConfig,
    QueueConfig,
    WatchConfig,
)
from kubealert.models.resources import ResourceKind
from kubealert.observability.logging import LOG_FORMATS

_PREFIX = "KUBEALERT_"
_LOG_LEVELS = ("debug", "info", "warning", "error")


def _env(name: str, default: str = "") -> str:
    return os.environ.get(_PREFIX + name, default)


def _number(name: str, default: float, cast: type[int] | type[float]) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{_PREFIX}{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int, lo: int | None = None, hi: int | None = None) -> int:
    value = int(_number(name, default, int))
    if lo is not None and value < lo:
        value = lo
    if hi is not None and value > hi:
        value = hi
    return value


def _env_float(name: str, default: float) -> float:
    return float(_number(name, default, float))


def _env_choice(name: str, default: str, allowed: Collection[str]) -> str:
    value = _env(name, default).strip().lower()
    if value not in allowed:
        raise ValueError(f"{_PREFIX}{name}={value!r} is not one of {', '.join(allowed)}")
    return value


def _env_kinds(name: str) -> list[ResourceKind]:
    """Comma-separated kinds, de-duplicated in order; unset or empty means every kind."""
    kinds: list[ResourceKind] = []
    for part in _env(name).split(","):
        part = part.strip().lower()
        if not part:
            continue
        try:
            kind = ResourceKind(part)
        except ValueError:
            supported = ", ".join(ResourceKind)
            raise ValueError(f"{_PREFIX}{name}: unsupported kind {part!r}; supported: {supported}") from None
        if kind not in kinds:
            kinds.append(kind)
    return kinds or list(ResourceKind)


def load_config() -> KubeAlertConfig:
    return KubeAlertConfig(
        watch=WatchConfig(
            resources=_env_kinds("RESOURCES"),
            namespace=_env("NAMESPACE").strip(),
        ),
        controller=ControllerConfig(
            max_retries=_env_int("MAX_RETRIES", 5, lo=0, hi=20),
            workers=_env_int("WORKERS", 1, lo=1, hi=16),
            sync_timeout_seconds=_env_int("SYNC_TIMEOUT", 120, lo=0),
        ),
        queue=QueueConfig(
            base_delay_seconds=_env_float("QUEUE_BASE_DELAY", 0.005),
            max_delay_seconds=_env_float("QUEUE_MAX_DELAY", 1000.0),
            qps=_env_float("QUEUE_QPS", 10.0),
            burst=_env_int("QUEUE_BURST", 100, lo=1),
        ),
        notifications=NotificationConfig(
            slack_secret_ref=_env("NOTIFICATIONS_SLACK_SECRET_REF"),
            webhook_secret_ref=_env("NOTIFICATIONS_WEBHOOK_SECRET_REF"),
        ),
        api=APIConfig(port=_env_int("API_PORT", 8080, lo=1024, hi=65535)),
        log=LogConfig(
            level=_env_choice("LOG_LEVEL", "info", _LOG_LEVELS),
            format=_env_choice("LOG_FORMAT", "json", LOG_FORMATS),
        ),
    )
