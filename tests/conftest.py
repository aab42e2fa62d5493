import os
from pathlib import Path

import pytest

from deltacrawl.config import Settings
from deltacrawl.exceptions import SinkError
from deltacrawl.sink.base import BaseSink


class RecordingSink(BaseSink):
    """In-memory sink that remembers every push."""

    def __init__(self, fail_for: tuple[str, ...] = ()):
        self.pushes: list[dict] = []
        self.fail_for = fail_for
        self.closed = False

    def push(self, identifier, content, content_type, metadata):
        if any(name in identifier for name in self.fail_for):
            raise SinkError(f"refused {identifier}")
        self.pushes.append({
            "identifier": identifier,
            "content": content.read(),
            "content_type": content_type,
            "metadata": dict(metadata),
        })

    @property
    def identifiers(self) -> list[str]:
        return [p["identifier"] for p in self.pushes]

    def close(self):
        self.closed = True


def write_file(path: Path, content: bytes = b"content", mtime_ms: int | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mtime_ms is not None:
        set_mtime(path, mtime_ms)
    return path


def set_mtime(path: Path, mtime_ms: int) -> None:
    ns = mtime_ms * 1_000_000
    os.utime(path, ns=(ns, ns))


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep .env files and DELTACRAWL_* variables of the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("DELTACRAWL_"):
            monkeypatch.delenv(key)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def docs(tmp_path):
    root = tmp_path / "docs"
    root.mkdir()
    return root


@pytest.fixture
def make_settings(tmp_path):
    def _make(paths, **overrides):
        values = {
            "paths": [str(p) for p in paths],
            "solr_uri": "http://localhost:8983/solr/documents",
            "delta_file": tmp_path / "files.delta",
        }
        values.update(overrides)
        return Settings(**values)

    return _make
