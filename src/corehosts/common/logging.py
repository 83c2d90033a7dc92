"""Shared logging helpers for corehosts."""

from __future__ import annotations

import logging


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: we default
    to INFO level and a terse format suitable for a long-running sidecar. Pass
    ``force=True`` to reconfigure during tests or specialised entry points.
    """

    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO; watch streams would drown the useful lines
    logging.getLogger("httpx").setLevel(logging.WARNING)
