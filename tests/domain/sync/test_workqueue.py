from __future__ import annotations

import asyncio

import pytest

from corehosts.config import QueueRateLimit
from corehosts.domain.sync import ExponentialFailureRateLimiter, RateLimitingQueue


def test_queued_key_is_stored_once() -> None:
    async def scenario() -> list[str | None]:
        queue = RateLimitingQueue("test")
        queue.add("a")
        queue.add("a")
        queue.add("b")
        assert len(queue) == 2
        return [await queue.get(), await queue.get()]

    assert asyncio.run(scenario()) == ["a", "b"]


def test_key_added_while_processing_is_requeued_on_done() -> None:
    async def scenario() -> None:
        queue = RateLimitingQueue("test")
        queue.add("a")
        assert await queue.get() == "a"
        queue.add("a")
        queue.add("a")
        assert len(queue) == 0
        queue.done("a")
        assert len(queue) == 1
        assert await queue.get() == "a"
        queue.done("a")
        assert len(queue) == 0

    asyncio.run(scenario())


def test_processing_key_is_not_handed_to_second_worker() -> None:
    async def scenario() -> tuple[list[str], int]:
        queue = RateLimitingQueue("test")
        handled: list[str] = []
        in_flight: set[str] = set()
        overlaps = 0

        async def worker() -> None:
            nonlocal overlaps
            while (key := await queue.get()) is not None:
                if key in in_flight:
                    overlaps += 1
                in_flight.add(key)
                handled.append(key)
                if len(handled) == 1:
                    queue.add(key)
                await asyncio.sleep(0.01)
                in_flight.discard(key)
                queue.done(key)
                if len(handled) == 2:  # noqa: PLR2004
                    queue.shut_down()

        queue.add("a")
        await asyncio.gather(worker(), worker())
        return handled, overlaps

    assert asyncio.run(scenario()) == (["a", "a"], 0)


def test_rate_limiter_backs_off_exponentially_and_caps() -> None:
    limiter = ExponentialFailureRateLimiter(QueueRateLimit(base_delay=0.5, max_delay=3.0))

    delays = [limiter.when("a") for _ in range(5)]

    assert delays == [0.5, 1.0, 2.0, 3.0, 3.0]
    assert limiter.num_requeues("a") == 5
    assert limiter.when("b") == 0.5
    limiter.forget("a")
    assert limiter.num_requeues("a") == 0
    assert limiter.when("a") == 0.5


def test_rate_limiter_survives_huge_failure_counts() -> None:
    limiter = ExponentialFailureRateLimiter(QueueRateLimit(base_delay=0.005, max_delay=1000.0))

    for _ in range(2000):
        delay = limiter.when("a")

    assert delay == 1000.0


def test_add_rate_limited_delays_the_key() -> None:
    async def scenario() -> None:
        limiter = ExponentialFailureRateLimiter(QueueRateLimit(base_delay=0.02, max_delay=1.0))
        queue = RateLimitingQueue("test", limiter)
        queue.add_rate_limited("a")
        queue.add_rate_limited("a")
        assert len(queue) == 0
        assert queue.num_requeues("a") == 2
        assert await asyncio.wait_for(queue.get(), timeout=1.0) == "a"
        queue.done("a")
        queue.forget("a")
        assert queue.num_requeues("a") == 0

    asyncio.run(scenario())


def test_add_after_zero_delay_is_immediate() -> None:
    async def scenario() -> int:
        queue = RateLimitingQueue("test")
        queue.add_after("a", 0)
        return len(queue)

    assert asyncio.run(scenario()) == 1


def test_add_after_keeps_the_earliest_deadline() -> None:
    async def scenario() -> None:
        queue = RateLimitingQueue("test")
        queue.add_after("a", 10.0)
        queue.add_after("a", 0.01)
        queue.add_after("a", 5.0)
        assert await asyncio.wait_for(queue.get(), timeout=1.0) == "a"
        queue.done("a")
        await asyncio.sleep(0.05)
        assert len(queue) == 0

    asyncio.run(scenario())


def test_shut_down_releases_waiting_workers_and_drops_new_keys() -> None:
    async def scenario() -> None:
        queue = RateLimitingQueue("test")
        waiter = asyncio.create_task(queue.get())
        await asyncio.sleep(0)
        queue.add_after("later", 10.0)
        queue.shut_down()
        assert await asyncio.wait_for(waiter, timeout=1.0) is None
        queue.add("a")
        assert len(queue) == 0
        assert queue.shutting_down is True

    asyncio.run(scenario())


def test_get_drains_remaining_keys_after_shut_down() -> None:
    async def scenario() -> list[str | None]:
        queue = RateLimitingQueue("test")
        queue.add("a")
        queue.shut_down()
        return [await queue.get(), await queue.get()]

    assert asyncio.run(scenario()) == ["a", None]


@pytest.mark.parametrize("key", ["kube-system/coredns-hosts-api", "cluster-scoped"])
def test_keys_are_opaque_strings(key: str) -> None:
    async def scenario() -> str | None:
        queue = RateLimitingQueue("test")
        queue.add(key)
        return await queue.get()

    assert asyncio.run(scenario()) == key
