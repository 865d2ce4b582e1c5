"""Unit tests for kubealert.controller.classifier."""

from __future__ import annotations

from datetime import timedelta

import pytest

from kubealert.controller.classifier import CREATE_STATUS, classify, split_key
from kubealert.models.events import EventType, QueueItem, Reason, Status
from kubealert.models.resources import ObjectMetadata
from tests.conftest import AFTER_START, BEFORE_START, SERVER_START


def _item(
    key: str = "default/my-app",
    event_type: EventType = EventType.CREATE,
    resource_type: str = "Pod",
    namespace: str = "",
) -> QueueItem:
    return QueueItem(key=key, event_type=event_type, namespace=namespace, resource_type=resource_type)


def _meta(name: str = "my-app", namespace: str = "default", created=AFTER_START) -> ObjectMetadata:
    return ObjectMetadata(name=name, namespace=namespace, creation_timestamp=created)


# ---------------------------------------------------------------------------
# split_key
# ---------------------------------------------------------------------------


class TestSplitKey:
    def test_namespaced_key(self) -> None:
        assert split_key(_item("kube-system/coredns")) == ("kube-system", "coredns")

    def test_cluster_scoped_key(self) -> None:
        assert split_key(_item("my-node")) == ("", "my-node")

    def test_explicit_namespace_keeps_key_as_name(self) -> None:
        assert split_key(_item("coredns", namespace="kube-system")) == ("kube-system", "coredns")


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


class TestCreate:
    def test_new_object_alerts(self) -> None:
        alert = classify(_item(), _meta(), SERVER_START)
        assert alert is not None
        assert alert.reason is Reason.CREATED
        assert alert.status is Status.NORMAL
        assert (alert.name, alert.namespace, alert.kind) == ("my-app", "default", "Pod")

    @pytest.mark.parametrize(
        "created",
        [BEFORE_START, SERVER_START, None],
        ids=["older", "equal", "missing"],
    )
    def test_objects_not_newer_than_start_are_suppressed(self, created) -> None:
        assert classify(_item(), _meta(created=created), SERVER_START) is None

    def test_name_comes_from_metadata(self) -> None:
        alert = classify(_item("default/stale-key"), _meta(name="fresh-name"), SERVER_START)
        assert alert is not None
        assert alert.name == "fresh-name"

    @pytest.mark.parametrize(
        ("resource_type", "expected"),
        [
            ("NodeNotReady", Status.DANGER),
            ("NodeReady", Status.NORMAL),
            ("NodeRebooted", Status.DANGER),
            ("Backoff", Status.DANGER),
            ("Deployment", Status.NORMAL),
        ],
    )
    def test_status_table(self, resource_type: str, expected: Status) -> None:
        alert = classify(_item(resource_type=resource_type), _meta(), SERVER_START)
        assert alert is not None
        assert alert.status is expected

    def test_custom_status_table(self) -> None:
        table = {**CREATE_STATUS, "Pod": Status.WARNING}
        alert = classify(_item(), _meta(), SERVER_START, create_status=table)
        assert alert is not None
        assert alert.status is Status.WARNING


# ---------------------------------------------------------------------------
# Update / Delete
# ---------------------------------------------------------------------------


class TestUpdateDelete:
    def test_update_is_warning(self) -> None:
        alert = classify(_item(event_type=EventType.UPDATE), _meta(created=BEFORE_START), SERVER_START)
        assert alert is not None
        assert (alert.status, alert.reason) == (Status.WARNING, Reason.UPDATED)

    def test_backoff_update_is_danger(self) -> None:
        alert = classify(_item(event_type=EventType.UPDATE, resource_type="Backoff"), _meta(), SERVER_START)
        assert alert is not None
        assert alert.status is Status.DANGER

    def test_delete_is_danger(self) -> None:
        alert = classify(_item(event_type=EventType.DELETE), ObjectMetadata(), SERVER_START)
        assert alert is not None
        assert (alert.status, alert.reason) == (Status.DANGER, Reason.DELETED)

    @pytest.mark.parametrize("event_type", [EventType.UPDATE, EventType.DELETE])
    def test_name_and_namespace_come_from_key(self, event_type: EventType) -> None:
        alert = classify(
            _item("kube-system/coredns", event_type=event_type),
            _meta(name="ignored", namespace="ignored"),
            SERVER_START,
        )
        assert alert is not None
        assert (alert.namespace, alert.name) == ("kube-system", "coredns")

    def test_cluster_scoped_delete_has_no_namespace(self) -> None:
        alert = classify(_item("my-node", event_type=EventType.DELETE, resource_type="Node"), ObjectMetadata(), SERVER_START)
        assert alert is not None
        assert (alert.namespace, alert.name, alert.kind) == ("", "my-node", "Node")

    def test_update_ignores_creation_time(self) -> None:
        old = _meta(created=SERVER_START - timedelta(days=30))
        assert classify(_item(event_type=EventType.UPDATE), old, SERVER_START) is not None
