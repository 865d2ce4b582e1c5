"""Resource kinds and the metadata projection every kind exposes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class ResourceKind(StrEnum):
    """Closed set of resource kinds the controller can watch."""

    DEPLOYMENT = "deployment"
    REPLICATION_CONTROLLER = "replicationcontroller"
    REPLICA_SET = "replicaset"
    DAEMON_SET = "daemonset"
    SERVICE = "service"
    POD = "pod"
    JOB = "job"
    PERSISTENT_VOLUME = "persistentvolume"
    NAMESPACE = "namespace"
    SECRET = "secret"
    INGRESS = "ingress"
    NODE = "node"
    CLUSTER_ROLE = "clusterrole"
    SERVICE_ACCOUNT = "serviceaccount"
    EVENT = "event"

    @property
    def display_name(self) -> str:
        """API kind as written in manifests, e.g. ``ReplicaSet``."""
        return _DISPLAY_NAMES[self]

    @property
    def cluster_scoped(self) -> bool:
        return self in _CLUSTER_SCOPED


_DISPLAY_NAMES: dict[ResourceKind, str] = {
    ResourceKind.DEPLOYMENT: "Deployment",
    ResourceKind.REPLICATION_CONTROLLER: "ReplicationController",
    ResourceKind.REPLICA_SET: "ReplicaSet",
    ResourceKind.DAEMON_SET: "DaemonSet",
    ResourceKind.SERVICE: "Service",
    ResourceKind.POD: "Pod",
    ResourceKind.JOB: "Job",
    ResourceKind.PERSISTENT_VOLUME: "PersistentVolume",
    ResourceKind.NAMESPACE: "Namespace",
    ResourceKind.SECRET: "Secret",
    ResourceKind.INGRESS: "Ingress",
    ResourceKind.NODE: "Node",
    ResourceKind.CLUSTER_ROLE: "ClusterRole",
    ResourceKind.SERVICE_ACCOUNT: "ServiceAccount",
    ResourceKind.EVENT: "Event",
}

_CLUSTER_SCOPED = frozenset(
    {
        ResourceKind.PERSISTENT_VOLUME,
        ResourceKind.NAMESPACE,
        ResourceKind.NODE,
        ResourceKind.CLUSTER_ROLE,
    }
)


@dataclass(frozen=True)
class ObjectMetadata:
    """Identifying attributes shared by every supported kind.

    The zero value (empty strings, no timestamp) stands for an object whose
    kind was not recognised.
    """

    name: str = ""
    namespace: str = ""
    creation_timestamp: datetime | None = None
