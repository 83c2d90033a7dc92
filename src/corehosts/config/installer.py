"""Installer settings: which CoreDNS to patch and how the sidecar looks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_bool, env_int, env_optional_str, env_str
from .resilience import RetryPolicy, get_retry_policy

DEFAULT_COREDNS_NAME: Final[str] = "coredns"
DEFAULT_COREDNS_NAMESPACE: Final[str] = "kube-system"
DEFAULT_FALLBACK_SERVICE_NAME: Final[str] = "kube-dns"
DEFAULT_SERVER_IMAGE: Final[str] = "docker.io/devincd/coredns-hosts-server"
DEFAULT_SERVER_VERSION: Final[str] = "v0.0.1"
DEFAULT_SERVER_PORT: Final[int] = 9080
DEFAULT_SIDECAR_NAME: Final[str] = "coredns-hosts-server"
DEFAULT_VOLUME_NAME: Final[str] = "shared-data"
DEFAULT_MOUNT_PATH: Final[str] = "/etc/coredns-dir"
DEFAULT_HOSTS_PATH: Final[str] = "/etc/coredns-dir/hosts"
DEFAULT_COREFILE_KEY: Final[str] = "Corefile"
MANAGED_DIRECTIVE: Final[str] = "hosts"


@dataclass(frozen=True, slots=True)
class InstallerConfig:
    coredns_name: str = DEFAULT_COREDNS_NAME
    coredns_namespace: str = DEFAULT_COREDNS_NAMESPACE
    fallback_service_name: str = DEFAULT_FALLBACK_SERVICE_NAME
    server_image: str = DEFAULT_SERVER_IMAGE
    server_version: str = DEFAULT_SERVER_VERSION
    server_port: int = DEFAULT_SERVER_PORT
    server_kubeconfig: str | None = None
    sidecar_name: str = DEFAULT_SIDECAR_NAME
    volume_name: str = DEFAULT_VOLUME_NAME
    mount_path: str = DEFAULT_MOUNT_PATH
    hosts_path: str = DEFAULT_HOSTS_PATH
    corefile_key: str = DEFAULT_COREFILE_KEY
    managed_directive: str = MANAGED_DIRECTIVE
    sort_directives: bool = False
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @property
    def server_image_ref(self) -> str:
        return f"{self.server_image}:{self.server_version}"


def get_installer_config() -> InstallerConfig:
    return InstallerConfig(
        coredns_name=env_str("COREDNS_NAME", DEFAULT_COREDNS_NAME),
        coredns_namespace=env_str("COREDNS_NAMESPACE", DEFAULT_COREDNS_NAMESPACE),
        server_image=env_str("COREHOSTS_SERVER_IMAGE", DEFAULT_SERVER_IMAGE),
        server_version=env_str("COREHOSTS_SERVER_VERSION", DEFAULT_SERVER_VERSION),
        server_port=env_int("COREHOSTS_SERVER_PORT", DEFAULT_SERVER_PORT),
        server_kubeconfig=env_optional_str("COREHOSTS_SERVER_KUBECONFIG"),
        hosts_path=env_str("COREHOSTS_HOSTS_PATH", DEFAULT_HOSTS_PATH),
        sort_directives=env_bool("COREHOSTS_SORT_DIRECTIVES", False),  # noqa: FBT003
        retry=get_retry_policy(),
    )
