"""kubernetes-asyncio backed list/watch collaborators, one per resource kind."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import watch as k8s_watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from kubealert.cache.informer import ObjectList, WatchEvent
from kubealert.errors import KubeAlertError, WatchExpiredError
from kubealert.models.resources import ResourceKind

_log = structlog.get_logger(component="collector.listwatch")

_WATCH_TIMEOUT_S = 300

# kind -> (API group class, all-namespaces list method, namespaced list method).
# Cluster-scoped kinds have no namespaced variant.
_LIST_METHODS: dict[ResourceKind, tuple[str, str, str | None]] = {
    ResourceKind.DEPLOYMENT: ("AppsV1Api", "list_deployment_for_all_namespaces", "list_namespaced_deployment"),
    ResourceKind.REPLICATION_CONTROLLER: (
        "CoreV1Api",
        "list_replication_controller_for_all_namespaces",
        "list_namespaced_replication_controller",
    ),
    ResourceKind.REPLICA_SET: ("AppsV1Api", "list_replica_set_for_all_namespaces", "list_namespaced_replica_set"),
    ResourceKind.DAEMON_SET: ("AppsV1Api", "list_daemon_set_for_all_namespaces", "list_namespaced_daemon_set"),
    ResourceKind.SERVICE: ("CoreV1Api", "list_service_for_all_namespaces", "list_namespaced_service"),
    ResourceKind.POD: ("CoreV1Api", "list_pod_for_all_namespaces", "list_namespaced_pod"),
    ResourceKind.JOB: ("BatchV1Api", "list_job_for_all_namespaces", "list_namespaced_job"),
    ResourceKind.PERSISTENT_VOLUME: ("CoreV1Api", "list_persistent_volume", None),
    ResourceKind.NAMESPACE: ("CoreV1Api", "list_namespace", None),
    ResourceKind.SECRET: ("CoreV1Api", "list_secret_for_all_namespaces", "list_namespaced_secret"),
    ResourceKind.INGRESS: ("NetworkingV1Api", "list_ingress_for_all_namespaces", "list_namespaced_ingress"),
    ResourceKind.NODE: ("CoreV1Api", "list_node", None),
    ResourceKind.CLUSTER_ROLE: ("RbacAuthorizationV1Api", "list_cluster_role", None),
    ResourceKind.SERVICE_ACCOUNT: (
        "CoreV1Api",
        "list_service_account_for_all_namespaces",
        "list_namespaced_service_account",
    ),
    ResourceKind.EVENT: ("CoreV1Api", "list_event_for_all_namespaces", "list_namespaced_event"),
}


class KubernetesListWatch:
    """List/watch over a single kubernetes-asyncio list function.

    Args:
        list_fn:         Bound list method, e.g. ``CoreV1Api().list_pod_for_all_namespaces``.
        kind:            Kind label used in logs.
        namespace:       Passed to namespaced list methods; empty for all namespaces.
        timeout_seconds: Server-side watch timeout; the informer re-opens the watch after it.
    """

    def __init__(
        self,
        list_fn: Callable[..., Any],
        kind: str,
        namespace: str = "",
        timeout_seconds: int = _WATCH_TIMEOUT_S,
    ) -> None:
        self._list_fn = list_fn
        self._kind = kind
        self._kwargs: dict[str, Any] = {"namespace": namespace} if namespace else {}
        self._timeout_seconds = timeout_seconds

    async def list(self) -> ObjectList:
        response = await self._list_fn(**self._kwargs)
        metadata = getattr(response, "metadata", None)
        resource_version = getattr(metadata, "resource_version", "") or ""
        return ObjectList(items=list(response.items or []), resource_version=resource_version)

    async def watch(self, resource_version: str) -> AsyncIterator[WatchEvent]:
        stream_kwargs: dict[str, Any] = {
            **self._kwargs,
            "timeout_seconds": self._timeout_seconds,
            "allow_watch_bookmarks": True,
        }
        if resource_version:
            stream_kwargs["resource_version"] = resource_version
        watcher = k8s_watch.Watch()
        try:
            async with watcher.stream(self._list_fn, **stream_kwargs) as stream:
                async for raw_event in stream:
                    event_type = str(raw_event.get("type", ""))
                    if event_type == "ERROR":
                        _raise_for_error_event(raw_event)
                    obj = raw_event.get("raw_object") if event_type == "BOOKMARK" else raw_event.get("object")
                    yield WatchEvent(type=event_type, obj=obj)
        except ApiException as exc:
            if exc.status == 410:
                raise WatchExpiredError(f"{self._kind}: {exc.reason}") from exc
            raise


def _raise_for_error_event(raw_event: dict[str, Any]) -> None:
    status = raw_event.get("raw_object") or raw_event.get("object") or {}
    code = status.get("code") if isinstance(status, dict) else None
    message = status.get("message", "") if isinstance(status, dict) else str(status)
    if code == 410:
        raise WatchExpiredError(message)
    raise KubeAlertError(f"watch error {code}: {message}")


def build_list_watch(
    kind: ResourceKind,
    api_client: Any = None,
    namespace: str = "",
) -> KubernetesListWatch:
    """Build the list/watch for *kind*, namespaced when *namespace* is set and the kind allows it."""
    api_cls_name, all_ns_method, namespaced_method = _LIST_METHODS[kind]
    api = getattr(k8s_client, api_cls_name)(api_client)
    if namespace and namespaced_method is not None:
        return KubernetesListWatch(getattr(api, namespaced_method), kind.value, namespace=namespace)
    if namespace:
        _log.debug("cluster_scoped_kind_ignores_namespace", kind=kind.value, namespace=namespace)
    return KubernetesListWatch(getattr(api, all_ns_method), kind.value)
