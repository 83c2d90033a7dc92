"""Shared fixtures for Kubernetes adapter tests."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from corehosts.adapters.kubernetes import KubeClient
from corehosts.config import KubeConfig

type Handler = Callable[[httpx.Request], httpx.Response]
type ClientFactory = Callable[[Handler], KubeClient]

API_SERVER = "https://kube.test"


@pytest.fixture
def requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_client(requests: list[httpx.Request]) -> ClientFactory:
    def factory(handler: Handler) -> KubeClient:
        def recording(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        config = KubeConfig(api_server=API_SERVER, token="secret-token", ratelimit=None)
        return KubeClient(config, transport=httpx.MockTransport(recording))

    return factory
