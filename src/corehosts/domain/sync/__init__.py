"""Change-feed driven materialization of the records ConfigMap."""

from __future__ import annotations

from .controller import ConfigMapSyncController, ObjectWatcher, render_hosts, wait_for_stop
from .workqueue import ExponentialFailureRateLimiter, RateLimitingQueue

__all__ = [
    "ConfigMapSyncController",
    "ExponentialFailureRateLimiter",
    "ObjectWatcher",
    "RateLimitingQueue",
    "render_hosts",
    "wait_for_stop",
]
