"""Port for the destination of the materialized hosts snapshot."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class HostsSink(Protocol):
    """Receives the full hosts content; every write replaces the previous one."""

    def write(self, content: str) -> None: ...

    def clear(self) -> None: ...
