"""Controller package: metadata extraction, classification and the worker loop."""

from kubealert.controller.classifier import CREATE_STATUS, classify, split_key
from kubealert.controller.controller import MAX_RETRIES, AlertSink, Controller, ControllerContext
from kubealert.controller.metadata import get_object_metadata, resource_kind_of

__all__ = [
    "AlertSink",
    "CREATE_STATUS",
    "Controller",
    "ControllerContext",
    "MAX_RETRIES",
    "classify",
    "get_object_metadata",
    "resource_kind_of",
    "split_key",
]
