"""Public interface for the Kubernetes adapter."""

from __future__ import annotations

from .client import KubeClient, error_for_status, resource_path
from .schema import ListPayload, StatusPayload, WatchEventPayload

__all__ = [
    "KubeClient",
    "ListPayload",
    "StatusPayload",
    "WatchEventPayload",
    "error_for_status",
    "resource_path",
]
