"""Rate-limited httpx client shared by the API adapters.

Responses are never cached and requests are never retried here: retries belong
to the reconciler (version conflicts) and the sync work queue (failed syncs).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

    from httpx._client import UseClientDefault
    from httpx._types import (
        HeaderTypes,
        QueryParamTypes,
        TimeoutTypes,
        URLTypes,
    )

    from corehosts.config.resilience import RateLimit

ResponseHook = Callable[[httpx.Response], Awaitable[None] | None]


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    ratelimit: RateLimit | None = None
    verify: bool | str = True
    response_hooks: tuple[ResponseHook, ...] = field(default_factory=tuple)
    default_headers: Mapping[str, str] | None = None


class RequestOptions(TypedDict, total=False):
    json: object
    params: QueryParamTypes | None
    headers: HeaderTypes | None
    timeout: TimeoutTypes | UseClientDefault


class AsyncClientOptions(TypedDict, total=False):
    base_url: str
    timeout: TimeoutTypes
    headers: HeaderTypes
    event_hooks: dict[str, list[ResponseHook]]
    transport: httpx.AsyncBaseTransport
    verify: bool | str


class ResilientClient:
    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

        headers = dict(config.default_headers) if config.default_headers else None
        event_hooks = {"response": list(config.response_hooks)} if config.response_hooks else None

        client_kwargs: AsyncClientOptions = {"timeout": config.timeout_seconds}
        if config.base_url is not None:
            client_kwargs["base_url"] = config.base_url
        if headers is not None:
            client_kwargs["headers"] = headers
        if event_hooks is not None:
            client_kwargs["event_hooks"] = event_hooks
        if transport is not None:
            client_kwargs["transport"] = transport
        else:
            client_kwargs["verify"] = config.verify

        self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        async def do_request() -> httpx.Response:
            return await self._client.request(method, url, **kwargs)

        return await self._send(do_request)

    async def get(
        self,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(
        self,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(
        self,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: URLTypes,
        **kwargs: Unpack[RequestOptions],
    ) -> AsyncIterator[httpx.Response]:
        """Long-lived streaming request; only opening it counts against the rate limit."""

        if self._limiter is not None:
            await self._limiter.acquire()
        async with self._client.stream(method, url, **kwargs) as response:
            yield response

    async def _send(self, func: Callable[[], Awaitable[httpx.Response]]) -> httpx.Response:
        if self._limiter is None:
            return await func()
        async with self._limiter:
            return await func()
