"""Prometheus metrics for kubealert.

All collectors live in the default registry and are exposed by the REST API
at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

queue_depth = Gauge(
    "kubealert_queue_depth",
    "Items waiting in a controller work queue",
    ["queue"],
)

queue_adds_total = Counter(
    "kubealert_queue_adds_total",
    "Items accepted by a controller work queue",
    ["queue"],
)

queue_retries_total = Counter(
    "kubealert_queue_retries_total",
    "Items requeued with rate limiting",
    ["queue"],
)

work_duration_seconds = Histogram(
    "kubealert_work_duration_seconds",
    "Time spent processing one queue item",
    ["queue"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)

alerts_total = Counter(
    "kubealert_alerts_total",
    "Alerts handed to the alert sink",
    ["kind", "status", "reason"],
)

notifications_total = Counter(
    "kubealert_notifications_total",
    "Notification deliveries by channel and outcome",
    ["channel", "success"],
)

errors_total = Counter(
    "kubealert_errors_total",
    "Errors reported through the error-reporting channel",
    ["type"],
)

cache_synced = Gauge(
    "kubealert_cache_synced",
    "1 when the informer for a kind has completed its initial list",
    ["kind"],
)
