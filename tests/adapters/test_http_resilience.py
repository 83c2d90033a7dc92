from __future__ import annotations

import asyncio

import httpx

from corehosts.adapters.http_resilience import ResilienceConfig, ResilientClient
from corehosts.config import RateLimit


def _client(
    transport: httpx.MockTransport,
    *,
    ratelimit: RateLimit | None = None,
    hooks: list[httpx.Response] | None = None,
) -> ResilientClient:
    async def record(response: httpx.Response) -> None:
        if hooks is not None:
            hooks.append(response)

    config = ResilienceConfig(
        name="test",
        base_url="https://api.test",
        ratelimit=ratelimit,
        response_hooks=(record,),
        default_headers={"X-Client": "corehosts"},
    )
    return ResilientClient(config, transport=transport)


def test_requests_carry_default_headers_and_run_hooks() -> None:
    seen: list[httpx.Request] = []
    hooks: list[httpx.Response] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    async def scenario() -> httpx.Response:
        async with _client(httpx.MockTransport(handler), hooks=hooks) as client:
            return await client.get("/things", params={"a": "1"})

    response = asyncio.run(scenario())

    assert response.json() == {"ok": True}
    assert str(seen[0].url) == "https://api.test/things?a=1"
    assert seen[0].headers["X-Client"] == "corehosts"
    assert hooks == [response]


def test_rate_limit_spaces_out_requests() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    async def scenario() -> float:
        transport = httpx.MockTransport(handler)
        async with _client(transport, ratelimit=RateLimit(max_calls=1, per_seconds=0.05)) as client:
            loop = asyncio.get_running_loop()
            started = loop.time()
            for _ in range(3):
                await client.put("/things", json={})
            return loop.time() - started

    assert asyncio.run(scenario()) >= 0.05  # noqa: PLR2004


def test_stream_yields_response_lines() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"one\ntwo\n")

    async def scenario() -> list[str]:
        transport = httpx.MockTransport(handler)
        async with _client(transport) as client, client.stream("GET", "/watch") as response:
            return [line async for line in response.aiter_lines()]

    assert asyncio.run(scenario()) == ["one", "two"]
