"""Port for reading and writing remote objects."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from corehosts.domain.objects import (
        KubeObject,
        ObjectRef,
        ResourceKind,
        ResourceList,
        WatchEvent,
    )


@runtime_checkable
class ResourceClient(Protocol):
    """Versioned object store.

    ``update`` must fail with ``ConflictError`` when the object's
    ``metadata.resourceVersion`` is stale, and ``create`` when the object already
    exists. Missing objects raise ``NotFoundError``.
    """

    async def get[T: KubeObject](self, kind: ResourceKind[T], ref: ObjectRef) -> T: ...

    async def create[T: KubeObject](self, kind: ResourceKind[T], obj: T) -> T: ...

    async def update[T: KubeObject](self, kind: ResourceKind[T], obj: T) -> T: ...

    async def list[T: KubeObject](
        self,
        kind: ResourceKind[T],
        *,
        namespace: str | None = None,
        field_selector: str | None = None,
    ) -> ResourceList[T]: ...

    def watch[T: KubeObject](
        self,
        kind: ResourceKind[T],
        *,
        namespace: str | None = None,
        field_selector: str | None = None,
        resource_version: str | None = None,
        timeout_seconds: int | None = None,
    ) -> AsyncIterator[WatchEvent[T]]: ...
