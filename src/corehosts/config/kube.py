"""Kubernetes API server connection settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .env import env_bool, env_float, env_int, env_optional_str
from .errors import MissingConfigurationError
from .resilience import RateLimit

SERVICE_ACCOUNT_DIR: Final[Path] = Path("/var/run/secrets/kubernetes.io/serviceaccount")
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0


@dataclass(frozen=True, slots=True)
class KubeConfig:
    """Where and how to reach the API server."""

    api_server: str
    token: str | None = None
    ca_file: str | None = None
    insecure_skip_tls_verify: bool = False
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    ratelimit: RateLimit | None = field(
        default_factory=lambda: RateLimit(max_calls=10, per_seconds=2.0)
    )

    @property
    def verify(self) -> bool | str:
        if self.insecure_skip_tls_verify:
            return False
        return self.ca_file or True


def _read_token(path: Path) -> str | None:
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8").strip() or None


def get_kube_config(*, service_account_dir: Path = SERVICE_ACCOUNT_DIR) -> KubeConfig:
    """Build the API server config from ``KUBE_*`` variables or the in-cluster mount."""

    api_server = env_optional_str("KUBE_API_SERVER")
    if api_server is None:
        host = env_optional_str("KUBERNETES_SERVICE_HOST")
        port = env_optional_str("KUBERNETES_SERVICE_PORT") or "443"
        if host is None:
            raise MissingConfigurationError(
                "Missing configuration for: KUBE_API_SERVER (not running in-cluster)"
            )
        if ":" in host:
            host = f"[{host}]"
        api_server = f"https://{host}:{port}"

    token = env_optional_str("KUBE_TOKEN")
    if token is None:
        token_file = env_optional_str("KUBE_TOKEN_FILE")
        token = _read_token(Path(token_file) if token_file else service_account_dir / "token")

    ca_file = env_optional_str("KUBE_CA_FILE")
    if ca_file is None and (service_account_dir / "ca.crt").is_file():
        ca_file = str(service_account_dir / "ca.crt")

    burst = env_int("KUBE_CLIENT_BURST", 10)
    return KubeConfig(
        api_server=api_server.rstrip("/"),
        token=token,
        ca_file=ca_file,
        insecure_skip_tls_verify=env_bool("KUBE_INSECURE_SKIP_TLS_VERIFY", False),  # noqa: FBT003
        timeout_seconds=env_float("KUBE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        ratelimit=RateLimit(
            max_calls=burst, per_seconds=env_float("KUBE_CLIENT_BURST_WINDOW", 2.0)
        ),
    )
