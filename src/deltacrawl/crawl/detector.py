from deltacrawl.models import Decision, DeltaLog, DeltaRecord


class ChangeDetector:
    """Push a file unless its mtime equals the one recorded on the last run.

    Equality is exact: an older mtime (restored backup, clock rollback) is a
    change too.
    """

    def decide(
        self,
        path: str,
        current_mtime: int,
        log: DeltaLog,
    ) -> tuple[Decision, DeltaRecord]:
        record = DeltaRecord(path=path, last_modified=current_mtime)
        previous = log.get(path)

        if previous is not None and previous.last_modified == current_mtime:
            return Decision.SKIP, record

        return Decision.PUSH, record
