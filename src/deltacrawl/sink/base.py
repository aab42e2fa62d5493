from abc import ABC, abstractmethod
from typing import BinaryIO


class BaseSink(ABC):
    @abstractmethod
    def push(
        self,
        identifier: str,
        content: BinaryIO,
        content_type: str,
        metadata: dict[str, str],
    ) -> None:
        """Send one file to the index and commit it. Raises SinkError on failure."""
        ...

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
