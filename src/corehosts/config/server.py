"""Settings for the long-running hosts server (record store + sync loop)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_bool, env_float, env_int, env_str
from .installer import DEFAULT_HOSTS_PATH
from .resilience import QueueRateLimit, RetryPolicy, get_queue_rate_limit, get_retry_policy

DEFAULT_RECORDS_NAME: Final[str] = "coredns-hosts-api"
DEFAULT_RECORDS_NAMESPACE: Final[str] = "kube-system"
DEFAULT_POLL_INTERVAL_SECONDS: Final[float] = 1.0
DEFAULT_WATCH_TIMEOUT_SECONDS: Final[int] = 300


@dataclass(frozen=True, slots=True)
class SyncConfig:
    workers: int = 1
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    watch_timeout_seconds: int = DEFAULT_WATCH_TIMEOUT_SECONDS
    clear_on_delete: bool = True
    rate_limit: QueueRateLimit = field(default_factory=QueueRateLimit)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    records_name: str = DEFAULT_RECORDS_NAME
    records_namespace: str = DEFAULT_RECORDS_NAMESPACE
    hosts_path: str = DEFAULT_HOSTS_PATH
    sync: SyncConfig = field(default_factory=SyncConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)


def get_server_config() -> ServerConfig:
    return ServerConfig(
        records_name=env_str("COREHOSTS_RECORDS_NAME", DEFAULT_RECORDS_NAME),
        records_namespace=env_str("COREHOSTS_RECORDS_NAMESPACE", DEFAULT_RECORDS_NAMESPACE),
        hosts_path=env_str("COREHOSTS_HOSTS_PATH", DEFAULT_HOSTS_PATH),
        sync=SyncConfig(
            workers=env_int("COREHOSTS_SYNC_WORKERS", 1),
            poll_interval=env_float("COREHOSTS_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS),
            watch_timeout_seconds=env_int(
                "COREHOSTS_WATCH_TIMEOUT_SECONDS", DEFAULT_WATCH_TIMEOUT_SECONDS
            ),
            clear_on_delete=env_bool("COREHOSTS_CLEAR_ON_DELETE", True),  # noqa: FBT003
            rate_limit=get_queue_rate_limit(),
        ),
        retry=get_retry_policy(),
    )
