"""Custom DNS records kept as ``domain -> ip`` entries of one ConfigMap."""

from __future__ import annotations

import asyncio
import ipaddress
import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from corehosts.domain.errors import IntegrityError, RecordNotFoundError
from corehosts.domain.objects import CONFIG_MAPS, ConfigMap, ObjectMeta
from corehosts.domain.reconciliation import remove_data_entry, set_data_entry

if TYPE_CHECKING:
    from corehosts.domain.objects import ObjectRef
    from corehosts.domain.ports import ResourceClient
    from corehosts.domain.reconciliation import ResourceReconciler

log = getLogger(__name__)

# ConfigMap data keys are limited to this alphabet
_KEY_PATTERN = re.compile(r"^[-._a-zA-Z0-9]+$")


@dataclass(frozen=True, slots=True)
class Record:
    domain: str
    ip: str


def validate_record(domain: str, ip: str) -> None:
    validate_domain(domain)
    try:
        ipaddress.ip_address(ip)
    except ValueError as exc:
        raise ValueError(f"invalid ip address {ip!r} for {domain}") from exc


def validate_domain(domain: str) -> None:
    if not domain or len(domain) > 253 or not _KEY_PATTERN.fullmatch(domain):  # noqa: PLR2004
        raise ValueError(f"invalid domain name {domain!r}")


class RecordStore:
    """CRUD over the records ConfigMap.

    Writes go through the resource reconciler, so concurrent writers in other
    processes are handled by resourceVersion checks. The local lock only keeps
    this process from issuing overlapping round trips.
    """

    def __init__(
        self,
        client: ResourceClient,
        reconciler: ResourceReconciler,
        ref: ObjectRef,
    ) -> None:
        self._client = client
        self._reconciler = reconciler
        self.ref = ref
        self._lock = asyncio.Lock()

    async def bootstrap(self) -> None:
        """Create the records ConfigMap if it does not exist yet."""

        async with self._lock:
            result = await self._reconciler.reconcile(
                CONFIG_MAPS,
                self.ref,
                lambda current: (current, False),
                create=self._empty_config_map,
            )
        if result.written:
            log.info("Created records ConfigMap %s", self.ref)

    async def set(self, domain: str, ip: str) -> Record:
        validate_record(domain, ip)
        record = Record(domain=domain, ip=ip)
        async with self._lock:
            result = await self._reconciler.reconcile(
                CONFIG_MAPS, self.ref, set_data_entry(record.domain, record.ip)
            )
            if not result.written:
                log.debug("Record %s -> %s already present", domain, ip)
                return record
            stored = await self._fetch_data()
        if stored.get(domain) != ip:
            raise IntegrityError(
                f"failed to set {domain}({ip}): stored value is {stored.get(domain)!r}",
                domain=domain,
            )
        log.info("Set record %s -> %s", domain, ip)
        return record

    async def delete(self, domain: str) -> None:
        validate_domain(domain)
        async with self._lock:
            result = await self._reconciler.reconcile(
                CONFIG_MAPS, self.ref, remove_data_entry(domain)
            )
            if not result.written:
                log.debug("Record %s already absent", domain)
                return
            stored = await self._fetch_data()
        if domain in stored:
            raise IntegrityError(
                f"failed to delete {domain}: still stored as {stored[domain]}",
                domain=domain,
            )
        log.info("Deleted record %s", domain)

    async def get(self, domain: str) -> Record:
        async with self._lock:
            data = await self._fetch_data()
        if domain not in data:
            raise RecordNotFoundError(domain)
        return Record(domain=domain, ip=data[domain])

    async def list(self) -> list[Record]:
        async with self._lock:
            data = await self._fetch_data()
        return [Record(domain=domain, ip=ip) for domain, ip in sorted(data.items())]

    async def _fetch_data(self) -> dict[str, str]:
        config_map = await self._client.get(CONFIG_MAPS, self.ref)
        return dict(config_map.data or {})

    def _empty_config_map(self) -> ConfigMap:
        return ConfigMap(
            api_version="v1",
            kind="ConfigMap",
            metadata=ObjectMeta(name=self.ref.name, namespace=self.ref.namespace),
            data={},
        )
