import pytest

from deltacrawl.models import DeltaLog, DeltaRecord
from deltacrawl.storage.delta import DeltaStore


@pytest.fixture
def store(tmp_path):
    return DeltaStore(tmp_path / "files.delta")


def test_load_missing_file_is_empty(store):
    log = store.load()
    assert len(log) == 0


def test_save_and_load(store):
    log = DeltaLog([
        DeltaRecord(path="/docs/a.txt", last_modified=1000),
        DeltaRecord(path="/docs/sub/b.pdf", last_modified=1700000000123),
    ])
    assert store.save(log) is True

    loaded = store.load()
    assert len(loaded) == 2
    assert loaded.get("/docs/a.txt").last_modified == 1000
    assert loaded.get("/docs/sub/b.pdf").last_modified == 1700000000123


def test_file_format(store):
    store.save(DeltaLog([DeltaRecord(path="/docs/a.txt", last_modified=1000)]))
    assert store.path.read_text(encoding="utf-8") == "/docs/a.txt|1000\n"


def test_malformed_lines_are_dropped(store):
    store.path.write_text(
        "/docs/a.txt|1000\n"
        "garbage without delimiter\n"
        "/docs/b.txt|not-a-number\n"
        "/docs/c.txt|-5\n"
        "|1234\n"
        "\n"
        "/docs/d.txt|2000\n",
        encoding="utf-8",
    )
    log = store.load()
    assert sorted(r.path for r in log) == ["/docs/a.txt", "/docs/d.txt"]


def test_later_lines_win(store):
    store.path.write_text("/docs/a.txt|1000\n/docs/a.txt|3000\n", encoding="utf-8")
    log = store.load()
    assert len(log) == 1
    assert log.get("/docs/a.txt").last_modified == 3000


def test_three_field_line_is_dropped(store):
    store.path.write_text("/docs/a|b|123\n/docs/c.txt|456\n", encoding="utf-8")
    log = store.load()
    assert "/docs/a|b" not in log
    assert "/docs/a" not in log
    assert [r.path for r in log] == ["/docs/c.txt"]


def test_path_containing_delimiter_is_not_persisted(store):
    store.save(DeltaLog([
        DeltaRecord(path="/docs/a|b.txt", last_modified=42),
        DeltaRecord(path="/docs/c.txt", last_modified=43),
    ]))
    assert store.path.read_text(encoding="utf-8") == "/docs/c.txt|43\n"
    assert "/docs/a|b.txt" not in store.load()


def test_custom_delimiter(tmp_path):
    store = DeltaStore(tmp_path / "files.delta", delimiter="\t")
    store.save(DeltaLog([DeltaRecord(path="/docs/a.txt", last_modified=7)]))
    assert store.path.read_text(encoding="utf-8") == "/docs/a.txt\t7\n"
    assert store.load().get("/docs/a.txt").last_modified == 7


def test_delimiter_must_be_single_character(tmp_path):
    with pytest.raises(ValueError):
        DeltaStore(tmp_path / "files.delta", delimiter="||")


def test_save_replaces_whole_log(store):
    store.save(DeltaLog([
        DeltaRecord(path="/docs/a.txt", last_modified=1000),
        DeltaRecord(path="/docs/b.txt", last_modified=1000),
    ]))
    store.save(DeltaLog([DeltaRecord(path="/docs/a.txt", last_modified=2000)]))
    assert store.path.read_text(encoding="utf-8") == "/docs/a.txt|2000\n"
    assert not store.path.with_name("files.delta.tmp").exists()


def test_save_failure_keeps_previous_file(tmp_path):
    store = DeltaStore(tmp_path / "files.delta")
    store.save(DeltaLog([DeltaRecord(path="/docs/a.txt", last_modified=1000)]))

    # A directory where the temp file should go makes the write fail
    (tmp_path / "files.delta.tmp").mkdir()
    ok = store.save(DeltaLog([DeltaRecord(path="/docs/b.txt", last_modified=5)]))

    assert ok is False
    assert store.path.read_text(encoding="utf-8") == "/docs/a.txt|1000\n"


def test_unreadable_file_is_empty(tmp_path):
    # A directory in place of the log cannot be read as a file
    path = tmp_path / "files.delta"
    path.mkdir()
    assert len(DeltaStore(path).load()) == 0


def test_non_utf8_path_round_trip(store):
    name = "/docs/caf\udce9.txt"
    store.save(DeltaLog([DeltaRecord(path=name, last_modified=9)]))
    assert store.load().get(name).last_modified == 9


def test_creates_parent_directory(tmp_path):
    store = DeltaStore(tmp_path / "state" / "files.delta")
    assert store.save(DeltaLog([DeltaRecord(path="/docs/a.txt", last_modified=1)]))
    assert store.path.exists()
