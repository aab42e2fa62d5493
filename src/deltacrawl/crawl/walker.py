"""Depth-first crawl of one root, pushing new and changed files to the sink."""

import logging
import os
import stat
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from deltacrawl.crawl.detector import ChangeDetector
from deltacrawl.crawl.filtering import PathFilter
from deltacrawl.crawl.remap import PathRemapper
from deltacrawl.exceptions import FilesystemAccessError, SinkError
from deltacrawl.models import Decision, DeltaLog
from deltacrawl.sink.base import BaseSink

logger = logging.getLogger(__name__)


class EntryStatus(str, Enum):
    PUSHED = "pushed"
    SKIPPED = "skipped"
    FILTERED = "filtered"
    DIRECTORY = "directory"
    SINK_ERROR = "sink_error"
    FAILED = "failed"


@dataclass
class EntryOutcome:
    path: Path
    status: EntryStatus
    error: str | None = None


@dataclass
class WalkResult:
    root: Path
    counts: Counter = field(default_factory=Counter)
    problems: list[EntryOutcome] = field(default_factory=list)

    def add(self, outcome: EntryOutcome) -> None:
        self.counts[outcome.status] += 1
        if outcome.status in (EntryStatus.FAILED, EntryStatus.SINK_ERROR):
            self.problems.append(outcome)

    @property
    def pushed(self) -> int:
        return self.counts[EntryStatus.PUSHED]

    @property
    def skipped(self) -> int:
        return self.counts[EntryStatus.SKIPPED]

    @property
    def filtered(self) -> int:
        return self.counts[EntryStatus.FILTERED]

    @property
    def failed(self) -> int:
        return self.counts[EntryStatus.FAILED]

    @property
    def sink_errors(self) -> int:
        return self.counts[EntryStatus.SINK_ERROR]


def mtime_millis(st: os.stat_result) -> int:
    # Delta records are non-negative; pre-epoch timestamps collapse to 0
    return max(st.st_mtime_ns // 1_000_000, 0)


class CrawlWalker:
    def __init__(
        self,
        path_filter: PathFilter,
        remapper: PathRemapper,
        detector: ChangeDetector,
        sink: BaseSink,
        content_type: str,
    ):
        self.path_filter = path_filter
        self.remapper = remapper
        self.detector = detector
        self.sink = sink
        self.content_type = content_type

    def walk(self, root: str | Path, log: DeltaLog) -> WalkResult:
        """Crawl ``root`` and upsert a record into ``log`` for every eligible file.

        Failures on single entries are recorded in the result and never stop
        the walk. Only an unlistable root raises FilesystemAccessError.
        """
        root = Path(os.path.abspath(root))
        result = WalkResult(root=root)

        try:
            root_stat = root.stat()
            children = self._list(root)
        except OSError as e:
            raise FilesystemAccessError(f"Couldn't list {root}: {e}") from e

        # Directory listings are consumed lazily so the visit order matches a
        # recursive walk, without growing the call stack.
        stack: list[Iterator[Path]] = [iter(children)]
        seen = {(root_stat.st_dev, root_stat.st_ino)}

        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                continue

            # Unreadable entries, dangling symlinks included, are excluded quietly
            if not os.access(child, os.R_OK):
                result.add(EntryOutcome(child, EntryStatus.FILTERED))
                continue

            try:
                st = child.stat()
            except OSError as e:
                result.add(self._failure(child, e))
                continue

            try:
                eligible = self.path_filter.eligible(child, st)
            except OSError as e:
                result.add(self._failure(child, e))
                continue

            if not eligible:
                result.add(EntryOutcome(child, EntryStatus.FILTERED))
                continue

            if stat.S_ISDIR(st.st_mode):
                key = (st.st_dev, st.st_ino)
                if key in seen:
                    logger.debug(f"Already crawled {child}, not following it again")
                    result.add(EntryOutcome(child, EntryStatus.FILTERED))
                    continue
                seen.add(key)
                result.add(EntryOutcome(child, EntryStatus.DIRECTORY))
                try:
                    stack.append(iter(self._list(child)))
                except OSError as e:
                    result.add(self._failure(child, e))
                continue

            result.add(self._visit_file(child, st, log))

        return result

    @staticmethod
    def _list(directory: Path) -> list[Path]:
        return list(directory.iterdir())

    @staticmethod
    def _failure(path: Path, error: OSError) -> EntryOutcome:
        logger.warning(f"Skipping {path}: {error}")
        return EntryOutcome(path, EntryStatus.FAILED, str(error))

    def _visit_file(self, path: Path, st: os.stat_result, log: DeltaLog) -> EntryOutcome:
        key = str(path)
        decision, record = self.detector.decide(key, mtime_millis(st), log)

        if decision is Decision.SKIP:
            logger.debug(f"Not pushing: {key}")
            log.upsert(record)
            return EntryOutcome(path, EntryStatus.SKIPPED)

        outcome = self._push(path)
        if outcome.status is not EntryStatus.FAILED:
            # Failed pushes are recorded too, so they are not retried until the file changes
            log.upsert(record)
        return outcome

    def _push(self, path: Path) -> EntryOutcome:
        identifier = self.remapper.remap(path)
        metadata = {"id": identifier, "resourcename": path.name}
        logger.debug(f"Pushing: {path} as {identifier} ...")

        try:
            with path.open("rb") as content:
                self.sink.push(identifier, content, self.content_type, metadata)
        except SinkError as e:
            logger.error(f"Error pushing {path}: {e}")
            return EntryOutcome(path, EntryStatus.SINK_ERROR, str(e))
        except OSError as e:
            return self._failure(path, e)
        except Exception as e:
            logger.error(f"Error pushing {path}: {e}")
            return EntryOutcome(path, EntryStatus.SINK_ERROR, str(e))

        return EntryOutcome(path, EntryStatus.PUSHED)
