"""Application orchestration entry points."""

from __future__ import annotations

from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from corehosts.adapters.hosts_file import HostsFileSink
from corehosts.adapters.kubernetes import KubeClient
from corehosts.config import get_installer_config, get_kube_config, get_server_config
from corehosts.domain.installer import InstallReport, Installer
from corehosts.domain.objects import ObjectRef
from corehosts.domain.reconciliation import ResourceReconciler
from corehosts.domain.records import Record, RecordStore
from corehosts.domain.sync import ConfigMapSyncController

if TYPE_CHECKING:
    import asyncio
    from collections.abc import AsyncIterator

    from corehosts.config import InstallerConfig, KubeConfig, ServerConfig
    from corehosts.domain.ports import HostsSink, ResourceClient

log = getLogger(__name__)


@asynccontextmanager
async def _resource_client(
    client: ResourceClient | None,
    kube_config: KubeConfig | None,
) -> AsyncIterator[ResourceClient]:
    if client is not None:
        yield client
        return
    async with KubeClient(kube_config or get_kube_config()) as kube:
        yield kube


def _records_ref(config: ServerConfig) -> ObjectRef:
    return ObjectRef(name=config.records_name, namespace=config.records_namespace)


async def install(
    config: InstallerConfig | None = None,
    *,
    client: ResourceClient | None = None,
    kube_config: KubeConfig | None = None,
) -> InstallReport:
    """Patch the CoreDNS installation so it serves records from the shared hosts file."""

    effective = config or get_installer_config()
    log.info(
        "Starting installer: coredns=%s/%s, server=%s, port=%s",
        effective.coredns_namespace,
        effective.coredns_name,
        effective.server_image_ref,
        effective.server_port,
    )
    async with _resource_client(client, kube_config) as resources:
        reconciler = ResourceReconciler(resources, effective.retry)
        report = await Installer(resources, reconciler, effective).reconcile()
    log.info("Finished installer: updated=%s", ", ".join(report.written) or "nothing")
    return report


async def serve(
    stop: asyncio.Event,
    config: ServerConfig | None = None,
    *,
    client: ResourceClient | None = None,
    kube_config: KubeConfig | None = None,
    sink: HostsSink | None = None,
) -> None:
    """Bootstrap the records ConfigMap and mirror it into the hosts file until ``stop``."""

    effective = config or get_server_config()
    ref = _records_ref(effective)
    async with _resource_client(client, kube_config) as resources:
        store = RecordStore(resources, ResourceReconciler(resources, effective.retry), ref)
        await store.bootstrap()
        controller = ConfigMapSyncController(
            resources,
            sink or HostsFileSink(effective.hosts_path),
            ref,
            effective.sync,
        )
        await controller.run(stop)
    log.info("Hosts server stopped")


@asynccontextmanager
async def _record_store(
    config: ServerConfig | None,
    client: ResourceClient | None,
    kube_config: KubeConfig | None,
) -> AsyncIterator[RecordStore]:
    effective = config or get_server_config()
    async with _resource_client(client, kube_config) as resources:
        reconciler = ResourceReconciler(resources, effective.retry)
        yield RecordStore(resources, reconciler, _records_ref(effective))


async def set_record(
    domain: str,
    ip: str,
    *,
    config: ServerConfig | None = None,
    client: ResourceClient | None = None,
    kube_config: KubeConfig | None = None,
) -> Record:
    async with _record_store(config, client, kube_config) as store:
        await store.bootstrap()
        return await store.set(domain, ip)


async def delete_record(
    domain: str,
    *,
    config: ServerConfig | None = None,
    client: ResourceClient | None = None,
    kube_config: KubeConfig | None = None,
) -> None:
    async with _record_store(config, client, kube_config) as store:
        await store.delete(domain)


async def get_record(
    domain: str,
    *,
    config: ServerConfig | None = None,
    client: ResourceClient | None = None,
    kube_config: KubeConfig | None = None,
) -> Record:
    async with _record_store(config, client, kube_config) as store:
        return await store.get(domain)


async def list_records(
    *,
    config: ServerConfig | None = None,
    client: ResourceClient | None = None,
    kube_config: KubeConfig | None = None,
) -> list[Record]:
    async with _record_store(config, client, kube_config) as store:
        return await store.list()
