"""Watch-driven sync of the records ConfigMap into the hosts file.

Three cooperating tasks share one stop signal:

- the watcher lists and watches the ConfigMap and pushes change notifications
  onto an inbound event queue
- the dispatcher classifies notifications and enqueues object keys on the
  rate-limited work queue
- workers pop keys, re-fetch the object and overwrite the sink

A failed sync is requeued with backoff; nothing here stops the process.
"""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from corehosts.config.server import SyncConfig
from corehosts.domain.errors import (
    NotFoundError,
    RemoteAPIError,
    ResourceExpiredError,
    TransportError,
)
from corehosts.domain.objects import CONFIG_MAPS, EventType, ObjectRef, WatchEvent

from .workqueue import ExponentialFailureRateLimiter, RateLimitingQueue

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from corehosts.domain.objects import ConfigMap, KubeObject, ResourceKind
    from corehosts.domain.ports import HostsSink, ResourceClient

log = getLogger(__name__)


def render_hosts(data: Mapping[str, str]) -> str:
    """One ``"<ip> <domain>"`` line per entry, as the CoreDNS hosts plugin reads it."""

    return "".join(f"{ip} {domain}\n" for domain, ip in sorted(data.items()))


async def wait_for_stop(stop: asyncio.Event, timeout: float) -> bool:
    """Sleep up to ``timeout``; return True as soon as ``stop`` is set."""

    try:
        await asyncio.wait_for(stop.wait(), timeout)
    except TimeoutError:
        return False
    return True


class ObjectWatcher[T: KubeObject]:
    """List-then-watch one named object and report every change."""

    def __init__(
        self,
        client: ResourceClient,
        kind: ResourceKind[T],
        ref: ObjectRef,
        on_event: Callable[[WatchEvent[T]], None],
        *,
        poll_interval: float = 1.0,
        watch_timeout_seconds: int = 300,
    ) -> None:
        self._client = client
        self._kind = kind
        self.ref = ref
        self._on_event = on_event
        self._poll_interval = poll_interval
        self._watch_timeout_seconds = watch_timeout_seconds
        self._last: T | None = None

    @property
    def field_selector(self) -> str:
        return f"metadata.name={self.ref.name}"

    async def run(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                resource_version = await self._relist()
                await self._watch(resource_version, stop)
            except ResourceExpiredError:
                log.info("Watch on %s %s expired, relisting", self._kind.name, self.ref)
            except (TransportError, RemoteAPIError) as exc:
                log.warning("Watch on %s %s failed: %s", self._kind.name, self.ref, exc)
                await wait_for_stop(stop, self._poll_interval)
            except Exception:
                log.exception("Watch on %s %s crashed, relisting", self._kind.name, self.ref)
                await wait_for_stop(stop, self._poll_interval)

    async def _relist(self) -> str | None:
        listing = await self._client.list(
            self._kind,
            namespace=self.ref.namespace,
            field_selector=self.field_selector,
        )
        current = next((item for item in listing.items if item.ref == self.ref), None)
        if current is not None:
            self._emit(WatchEvent(type=EventType.ADDED, obj=current))
        elif self._last is not None:
            # deleted while we were not watching
            self._emit(WatchEvent(type=EventType.DELETED, obj=self._last))
        return listing.resource_version

    async def _watch(self, resource_version: str | None, stop: asyncio.Event) -> None:
        events = self._client.watch(
            self._kind,
            namespace=self.ref.namespace,
            field_selector=self.field_selector,
            resource_version=resource_version,
            timeout_seconds=self._watch_timeout_seconds,
        )
        async for event in events:
            if event.type is EventType.BOOKMARK:
                continue
            self._emit(event)
            if stop.is_set():
                return

    def _emit(self, event: WatchEvent[T]) -> None:
        if event.obj.ref == self.ref:
            self._last = None if event.type is EventType.DELETED else event.obj
        self._on_event(event)


class ConfigMapSyncController:
    """Keep ``sink`` equal to the data of the ConfigMap at ``ref``."""

    def __init__(
        self,
        client: ResourceClient,
        sink: HostsSink,
        ref: ObjectRef,
        config: SyncConfig | None = None,
    ) -> None:
        self._client = client
        self._sink = sink
        self.ref = ref
        self.config = config or SyncConfig()
        self.queue = RateLimitingQueue(
            "ConfigMap", ExponentialFailureRateLimiter(self.config.rate_limit)
        )
        self._events: asyncio.Queue[WatchEvent[ConfigMap]] = asyncio.Queue()
        self._seen_versions: dict[str, str | None] = {}
        self._deleted: set[str] = set()
        self.watcher = ObjectWatcher(
            client,
            CONFIG_MAPS,
            ref,
            self.notify,
            poll_interval=self.config.poll_interval,
            watch_timeout_seconds=self.config.watch_timeout_seconds,
        )

    def notify(self, event: WatchEvent[ConfigMap]) -> None:
        """Notification callback: hand the event to the dispatcher."""

        self._events.put_nowait(event)

    def handle_event(self, event: WatchEvent[ConfigMap]) -> None:
        ref = event.obj.ref
        if ref != self.ref:
            return
        key = ref.key
        if event.type in {EventType.ADDED, EventType.MODIFIED}:
            resource_version = event.obj.resource_version
            if resource_version is not None and self._seen_versions.get(key) == resource_version:
                log.debug("Skip %s event for %s: resourceVersion unchanged", event.type, key)
                return
            self._seen_versions[key] = resource_version
            self._deleted.discard(key)
            log.info("%s event for configmap %s", event.type, key)
            self.queue.add(key)
        elif event.type is EventType.DELETED:
            self._seen_versions.pop(key, None)
            if not self.config.clear_on_delete:
                log.info("Configmap %s deleted; leaving hosts file as is", key)
                return
            log.info("Configmap %s deleted", key)
            self._deleted.add(key)
            self.queue.add(key)

    async def dispatch(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                event = await asyncio.wait_for(self._events.get(), self.config.poll_interval)
            except TimeoutError:
                continue
            self.handle_event(event)

    async def sync(self, key: str) -> None:
        ref = ObjectRef.from_key(key)
        try:
            config_map = await self._client.get(CONFIG_MAPS, ref)
        except NotFoundError:
            if key in self._deleted:
                self._sink.clear()
                self._deleted.discard(key)
                log.info("Configmap %s is gone, cleared hosts file", key)
            else:
                log.info("Configmap %s not found, nothing to sync", key)
            return
        data = config_map.data or {}
        self._sink.write(render_hosts(data))
        log.debug("Wrote %s entries from %s", len(data), key)

    async def process_next(self) -> bool:
        key = await self.queue.get()
        if key is None:
            return False
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            await self.sync(key)
        except Exception as exc:  # noqa: BLE001
            log.error(  # noqa: TRY400
                "Error syncing configmap %s (attempt %d), will retry: %s",
                key,
                self.queue.num_requeues(key) + 1,
                exc,
            )
            self.queue.add_rate_limited(key)
        else:
            self.queue.forget(key)
            log.info("Finished syncing configmap %s in %.3fs", key, loop.time() - started)
        finally:
            self.queue.done(key)
        return True

    async def worker(self) -> None:
        while await self.process_next():
            pass

    async def run(self, stop: asyncio.Event) -> None:
        log.info("Starting configmap controller for %s", self.ref)
        watcher = asyncio.create_task(self.watcher.run(stop), name="watcher")
        tasks = [
            asyncio.create_task(self.dispatch(stop), name="dispatcher"),
            *(
                asyncio.create_task(self.worker(), name=f"worker-{index}")
                for index in range(self.config.workers)
            ),
        ]
        log.info("Started %s workers", self.config.workers)
        await stop.wait()
        log.info("Shutting down workers")
        self.queue.shut_down()
        watcher.cancel()
        results = await asyncio.gather(watcher, *tasks, return_exceptions=True)
        for task, result in zip([watcher, *tasks], results, strict=True):
            if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                log.error("Task %s ended with %r", task.get_name(), result)
