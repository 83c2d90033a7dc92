"""Hosts file on local disk, shared with CoreDNS through a volume."""

from __future__ import annotations

import os
import tempfile
from logging import getLogger
from pathlib import Path

log = getLogger(__name__)


class HostsFileSink:
    """Replace the whole file on every write.

    The content goes to a temporary file in the same directory first and is
    renamed over the target, so readers see either the old or the new file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def write(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.chmod(tmp_name, 0o644)  # noqa: PTH101
            os.replace(tmp_name, self.path)  # noqa: PTH105
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        log.debug("Wrote %s bytes to %s", len(content), self.path)

    def clear(self) -> None:
        self.write("")
