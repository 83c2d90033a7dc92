"""Retry-on-conflict read-modify-write over remote objects.

One protocol serves every kind of object the system touches:

1) fetch the current object (or build it, where the call site allows creation)
2) run a pure mutation to get the desired object and whether it differs
3) write with the fetched resourceVersion
4) on a version conflict start over from 1, with bounded exponential backoff

Any error other than a conflict leaves immediately.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from corehosts.config.resilience import RetryPolicy
from corehosts.domain.errors import ConflictError, NotFoundError, RetryExhaustedError

if TYPE_CHECKING:
    from corehosts.domain.objects import KubeObject, ObjectRef, ResourceKind
    from corehosts.domain.ports import ResourceClient

type Mutation[T] = Callable[[T], tuple[T, bool]]
type Sleep = Callable[[float], Awaitable[None]]

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ReconcileResult[T]:
    obj: T
    written: bool
    attempts: int


def _with_version[T: KubeObject](obj: T, resource_version: str | None) -> T:
    if obj.metadata.resource_version == resource_version:
        return obj
    metadata = obj.metadata.model_copy(update={"resource_version": resource_version})
    return obj.model_copy(update={"metadata": metadata})


class ResourceReconciler:
    """Converge one remote object at a time towards the output of a mutation."""

    def __init__(
        self,
        client: ResourceClient,
        policy: RetryPolicy | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()  # noqa: S311

    async def reconcile[T: KubeObject](
        self,
        kind: ResourceKind[T],
        ref: ObjectRef,
        mutate: Mutation[T],
        *,
        create: Callable[[], T] | None = None,
    ) -> ReconcileResult[T]:
        """Apply ``mutate`` to the latest version of ``ref`` until a write sticks.

        ``create`` builds the object when it does not exist yet; without it a
        missing object raises ``NotFoundError``.
        """

        max_attempts = self.policy.max_attempts
        last_conflict: ConflictError | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                return await self._attempt(kind, ref, mutate, create=create, attempt=attempt)
            except ConflictError as exc:
                last_conflict = exc
                log.info(
                    "Conflict writing %s %s (attempt %s/%s): %s",
                    kind.name,
                    ref,
                    attempt,
                    max_attempts,
                    exc,
                )
                if attempt < max_attempts:
                    await self._sleep(self._backoff(attempt))
        raise RetryExhaustedError(kind=kind.name, ref=ref, attempts=max_attempts) from last_conflict

    async def _attempt[T: KubeObject](
        self,
        kind: ResourceKind[T],
        ref: ObjectRef,
        mutate: Mutation[T],
        *,
        create: Callable[[], T] | None,
        attempt: int,
    ) -> ReconcileResult[T]:
        try:
            current = await self._client.get(kind, ref)
        except NotFoundError:
            if create is None:
                raise
            desired, _ = mutate(create())
            created = await self._client.create(kind, _with_version(desired, None))
            log.info("Created %s %s", kind.name, ref)
            return ReconcileResult(obj=created, written=True, attempts=attempt)

        desired, needs_write = mutate(current)
        if not needs_write:
            log.debug("%s %s already converged", kind.name, ref)
            return ReconcileResult(obj=current, written=False, attempts=attempt)

        updated = await self._client.update(kind, _with_version(desired, current.resource_version))
        log.info(
            "Updated %s %s (resourceVersion %s -> %s)",
            kind.name,
            ref,
            current.resource_version,
            updated.resource_version,
        )
        return ReconcileResult(obj=updated, written=True, attempts=attempt)

    def _backoff(self, attempt: int) -> float:
        delay = self.policy.delay_for(attempt)
        if self.policy.jitter > 0:
            delay += delay * self.policy.jitter * self._rng.random()
        return delay
