"""Domain port definitions for adapters."""

from __future__ import annotations

from .resources import ResourceClient
from .sink import HostsSink

__all__ = ["HostsSink", "ResourceClient"]
