from pathlib import Path


class PathRemapper:
    """Rewrite a local path into the identifier sent to the index.

    Useful for locally mounted Samba shares: ``/mnt/share`` -> ``\\\\server\\share``.
    Entries are tried in order and only the first one found in the path is applied.
    """

    def __init__(self, table: tuple[tuple[str, str], ...] | list[tuple[str, str]] = ()):
        self.table = tuple(table)

    def remap(self, path: str | Path) -> str:
        p = str(path)

        for old, new in self.table:
            if old in p:
                return p.replace(old, new, 1)

        return p
