"""Application configuration helpers."""

from __future__ import annotations

from .errors import ConfigurationError, MissingConfigurationError
from .installer import InstallerConfig, get_installer_config
from .kube import KubeConfig, get_kube_config
from .resilience import (
    QueueRateLimit,
    RateLimit,
    RetryPolicy,
    get_queue_rate_limit,
    get_retry_policy,
)
from .server import ServerConfig, SyncConfig, get_server_config

__all__ = [
    "ConfigurationError",
    "InstallerConfig",
    "KubeConfig",
    "MissingConfigurationError",
    "QueueRateLimit",
    "RateLimit",
    "RetryPolicy",
    "ServerConfig",
    "SyncConfig",
    "get_installer_config",
    "get_kube_config",
    "get_queue_rate_limit",
    "get_retry_policy",
    "get_server_config",
]
