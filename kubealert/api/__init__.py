"""HTTP API: health, status and prometheus metrics for the running controllers."""

from kubealert.api.app import create_app

__all__ = ["create_app"]
