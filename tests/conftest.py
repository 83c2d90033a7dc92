from __future__ import annotations

import pytest

from corehosts.config import RetryPolicy
from corehosts.domain.reconciliation import ResourceReconciler
from tests.support.kube import InMemoryResourceClient, RecordingSink


@pytest.fixture
def client() -> InMemoryResourceClient:
    return InMemoryResourceClient()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def reconciler(client: InMemoryResourceClient, sleeps: list[float]) -> ResourceReconciler:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return ResourceReconciler(client, RetryPolicy(jitter=0.0), sleep=fake_sleep)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "KUBE_API_SERVER",
        "KUBE_TOKEN",
        "KUBE_TOKEN_FILE",
        "KUBE_CA_FILE",
        "KUBERNETES_SERVICE_HOST",
        "KUBERNETES_SERVICE_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
