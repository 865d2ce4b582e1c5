"""Pydantic response models for the kubealert REST API."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str  # "ok" or "syncing"
    synced: int
    total: int


class ControllerStatus(BaseModel):
    kind: str
    synced: bool
    queue_depth: int


class StatusResponse(BaseModel):
    version: str
    server_start_time: str  # ISO-8601 UTC
    controllers: list[ControllerStatus]
