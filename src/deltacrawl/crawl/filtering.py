"""Eligibility checks applied to every directory entry before it is crawled."""

import os
import stat
from pathlib import Path

from deltacrawl.models import FilterConfig


def file_extension(path: str | Path) -> str:
    """Lowercase text after the final dot of the file name, empty if there is none."""
    _, dot, ext = Path(path).name.rpartition(".")
    return ext.lower() if dot else ""


class PathFilter:
    """Decide whether an entry is crawled: readable, small enough, allowed extension.

    Directories pass without an extension check so they are always recursed into.
    """

    def __init__(self, config: FilterConfig):
        self.config = config

    def eligible(self, path: Path, st: os.stat_result | None = None) -> bool:
        """Return True if ``path`` should be recursed into (directory) or pushed (file).

        ``st`` is the entry's stat result if the caller already has it. Stat
        failures (entry vanished) propagate as OSError.
        """
        if not os.access(path, os.R_OK):
            return False

        if st is None:
            st = path.stat()

        if st.st_size > self.config.max_file_size:
            return False

        if stat.S_ISDIR(st.st_mode):
            return True

        if not stat.S_ISREG(st.st_mode):
            return False

        return file_extension(path) in self.config.extensions
