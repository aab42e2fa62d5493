from collections.abc import Iterable, Iterator
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Decision(str, Enum):
    PUSH = "push"
    SKIP = "skip"


class DeltaRecord(BaseModel):
    """Last observed modification time (epoch millis) of a crawled path."""

    model_config = ConfigDict(frozen=True)

    path: str
    last_modified: int = Field(ge=0)


class FilterConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    extensions: frozenset[str] = frozenset()
    max_file_size: int = Field(ge=0)
    remap_table: tuple[tuple[str, str], ...] = ()


class DeltaLog:
    """In-memory delta log keyed by canonical path. One record per path."""

    def __init__(self, records: Iterable[DeltaRecord] | None = None):
        self._records: dict[str, DeltaRecord] = {}
        for record in records or ():
            self.upsert(record)

    def get(self, path: str) -> DeltaRecord | None:
        return self._records.get(path)

    def upsert(self, record: DeltaRecord) -> None:
        self._records[record.path] = record

    def records(self) -> list[DeltaRecord]:
        return list(self._records.values())

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __iter__(self) -> Iterator[DeltaRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"DeltaLog({len(self._records)} records)"
