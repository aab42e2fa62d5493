"""One crawl run: load the delta log, walk every root, save the log once."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from deltacrawl.config import Settings
from deltacrawl.crawl.detector import ChangeDetector
from deltacrawl.crawl.filtering import PathFilter
from deltacrawl.crawl.remap import PathRemapper
from deltacrawl.crawl.walker import CrawlWalker, WalkResult
from deltacrawl.sink.base import BaseSink
from deltacrawl.storage.delta import DeltaStore

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    CRAWLING = "crawling"
    SAVING = "saving"
    DONE = "done"


@dataclass
class RootFailure:
    root: str
    error: str


@dataclass
class RunReport:
    results: list[WalkResult] = field(default_factory=list)
    failed_roots: list[RootFailure] = field(default_factory=list)
    records: int = 0
    saved: bool = False

    @property
    def pushed(self) -> int:
        return sum(r.pushed for r in self.results)

    @property
    def skipped(self) -> int:
        return sum(r.skipped for r in self.results)


class Orchestrator:
    """Drives IDLE -> LOADING -> CRAWLING -> SAVING -> DONE for configured roots.

    Settings are validated before the orchestrator exists, so configuration
    errors never reach the crawl.
    """

    def __init__(
        self,
        settings: Settings,
        sink: BaseSink,
        store: DeltaStore | None = None,
    ):
        self.settings = settings
        self.store = store or DeltaStore(settings.delta_file)
        filter_config = settings.filter_config()
        self.walker = CrawlWalker(
            path_filter=PathFilter(filter_config),
            remapper=PathRemapper(filter_config.remap_table),
            detector=ChangeDetector(),
            sink=sink,
            content_type=settings.content_type,
        )
        self.state = RunState.IDLE

    def _enter(self, state: RunState) -> None:
        logger.debug(f"Run state {self.state.value} -> {state.value}")
        self.state = state

    def run(self) -> RunReport:
        if self.state is not RunState.IDLE:
            raise RuntimeError(f"Run already started (state: {self.state.value})")

        report = RunReport()

        self._enter(RunState.LOADING)
        log = self.store.load()

        self._enter(RunState.CRAWLING)
        for root in self.settings.paths:
            logger.info(f"Starting index of: {root}")
            try:
                result = self.walker.walk(Path(root), log)
            except Exception as e:
                logger.error(f"Error crawling {root}: {e}")
                report.failed_roots.append(RootFailure(root=root, error=str(e)))
                continue

            report.results.append(result)
            logger.info(
                f"Done with {root}: {result.pushed} pushed, {result.skipped} unchanged, "
                f"{result.failed + result.sink_errors} errors"
            )

        self._enter(RunState.SAVING)
        report.records = len(log)
        report.saved = self.store.save(log)

        self._enter(RunState.DONE)
        logger.info("Done indexing the given paths!")
        return report
