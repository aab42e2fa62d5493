"""Persisted delta log: one ``<absolute-path>|<epoch-millis>`` record per line."""

import logging
from pathlib import Path

from deltacrawl.exceptions import DeltaLogIOError
from deltacrawl.models import DeltaLog, DeltaRecord

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = "|"

# Paths on POSIX are bytes; surrogateescape round-trips names that aren't valid UTF-8
ENCODING = "utf-8"
ERRORS = "surrogateescape"


class DeltaStore:
    def __init__(self, path: str | Path, delimiter: str = DEFAULT_DELIMITER):
        if len(delimiter) != 1:
            raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
        self.path = Path(path)
        self.delimiter = delimiter

    def parse_line(self, line: str) -> DeltaRecord | None:
        """Parse one persisted line. Returns None for anything malformed."""
        fields = line.rstrip("\r\n").split(self.delimiter)
        if len(fields) != 2:
            return None
        path, millis = fields
        if not path:
            return None
        if not (millis.isascii() and millis.isdigit()):
            return None
        return DeltaRecord(path=path, last_modified=int(millis))

    def format_record(self, record: DeltaRecord) -> str:
        return f"{record.path}{self.delimiter}{record.last_modified}\n"

    def load(self) -> DeltaLog:
        """Read the persisted log. A missing or unreadable file yields an empty log."""
        log = DeltaLog()
        dropped = 0
        try:
            with self.path.open("r", encoding=ENCODING, errors=ERRORS) as handle:
                for raw_line in handle:
                    record = self.parse_line(raw_line)
                    if record is None:
                        if raw_line.strip():
                            dropped += 1
                        continue
                    log.upsert(record)
        except FileNotFoundError:
            logger.info(f"No delta file at {self.path}, every eligible file will be pushed")
            return DeltaLog()
        except OSError as e:
            logger.warning(f"Couldn't read delta file {self.path}, starting empty: {e}")
            return DeltaLog()

        if dropped:
            logger.debug(f"Dropped {dropped} unparseable lines from {self.path}")
        logger.info(f"Loaded {len(log)} delta records from {self.path}")
        return log

    def save(self, log: DeltaLog) -> bool:
        """Replace the persisted log with ``log``. Returns False if the write failed.

        The previous file stays untouched unless the new one was written completely.
        """
        try:
            self._atomic_write(log)
        except DeltaLogIOError as e:
            logger.error(str(e))
            return False
        logger.info(f"Saved {len(log)} delta records to {self.path}")
        return True

    def _atomic_write(self, log: DeltaLog) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding=ENCODING, errors=ERRORS, newline="\n") as handle:
                for record in log:
                    if "\n" in record.path or "\r" in record.path:
                        logger.debug(f"Not persisting path with a line break: {record.path!r}")
                        continue
                    if self.delimiter in record.path:
                        logger.debug(f"Not persisting path containing the delimiter: {record.path!r}")
                        continue
                    handle.write(self.format_record(record))
            tmp.replace(self.path)
        except OSError as e:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Couldn't remove {tmp}")
            raise DeltaLogIOError(f"Couldn't write to delta file {self.path} ({e})") from e
