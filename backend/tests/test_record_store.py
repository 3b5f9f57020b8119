import json
import sys
import threading
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from intake.db.record_store import RecordStore
from intake.db.records import ApplicationRecord
from intake.errors import NotFoundError, StorageError, ValidationError


def _record(name: str = "Alice", timestamp: str = "2025-06-01T08:30:00.000Z") -> ApplicationRecord:
    return ApplicationRecord(timestamp=timestamp, name=name, grade="大一", introduction="hi")


def test_append_creates_directory_and_partition(tmp_path: Path):
    store = RecordStore(tmp_path / "data")
    assert store.append("2025-06-01", _record()) is True

    path = tmp_path / "data" / "application_2025-06-01.txt"
    assert path.exists()
    text = path.read_text(encoding="utf-8")
    assert "大一" in text
    assert '\n  {\n    "timestamp"' in text


def test_append_then_read_day_round_trips(tmp_path: Path):
    store = RecordStore(tmp_path)
    first = _record("Alice")
    second = _record("Bob", "2025-06-01T09:00:00.000Z")
    store.append("2025-06-01", first)
    store.append("2025-06-01", second)

    assert store.read_day("2025-06-01") == [first.model_dump(), second.model_dump()]


def test_read_day_missing_partition_is_not_found(tmp_path: Path):
    store = RecordStore(tmp_path)
    with pytest.raises(NotFoundError):
        store.read_day("2025-06-01")


@pytest.mark.parametrize("day_key", ["2025-6-1", "../etc/passwd", "2025-13-01", "2025-02-30", ""])
def test_invalid_day_keys_are_rejected(tmp_path: Path, day_key: str):
    store = RecordStore(tmp_path / "data")
    with pytest.raises(ValidationError):
        store.append(day_key, _record())
    with pytest.raises(ValidationError):
        store.read_day(day_key)
    assert not (tmp_path / "data").exists()


def test_corrupt_partition_is_backed_up_and_restarted_on_append(tmp_path: Path):
    store = RecordStore(tmp_path)
    path = tmp_path / "application_2025-06-01.txt"
    path.write_text("{not json", encoding="utf-8")

    assert store.append("2025-06-01", _record()) is True

    assert store.read_day("2025-06-01") == [_record().model_dump()]
    backups = list(tmp_path.glob("application_2025-06-01.txt.corrupt-*"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "{not json"


def test_non_array_partition_is_treated_as_empty_on_append(tmp_path: Path):
    store = RecordStore(tmp_path)
    (tmp_path / "application_2025-06-01.txt").write_text('{"name": "x"}', encoding="utf-8")

    store.append("2025-06-01", _record())
    assert len(store.read_day("2025-06-01")) == 1


def test_corrupt_partition_surfaces_on_read(tmp_path: Path):
    store = RecordStore(tmp_path)
    (tmp_path / "application_2025-06-01.txt").write_text("oops", encoding="utf-8")

    with pytest.raises(StorageError):
        store.read_day("2025-06-01")
    with pytest.raises(StorageError):
        store.read_all()


def test_read_all_concatenates_partitions_in_day_order(tmp_path: Path):
    store = RecordStore(tmp_path)
    store.append("2025-06-02", _record("Carol", "2025-06-02T10:00:00.000Z"))
    store.append("2025-06-01", _record("Alice"))
    store.append("2025-06-01", _record("Bob", "2025-06-01T09:00:00.000Z"))

    names = [entry["name"] for entry in store.read_all()]
    assert names == ["Alice", "Bob", "Carol"]


def test_list_days_ignores_foreign_files(tmp_path: Path):
    store = RecordStore(tmp_path)
    store.append("2025-06-01", _record())
    (tmp_path / "application_notes.txt").write_text("[]", encoding="utf-8")
    (tmp_path / "application_2025-06-03.txt.tmp").write_text("[]", encoding="utf-8")
    (tmp_path / "readme.md").write_text("hello", encoding="utf-8")

    assert store.list_days() == ["2025-06-01"]


def test_legacy_fields_are_returned_as_stored(tmp_path: Path):
    store = RecordStore(tmp_path)
    legacy = [{**_record().model_dump(), "submitTime": "2025-06-01T08:30:00.000Z"}]
    (tmp_path / "application_2025-06-01.txt").write_text(json.dumps(legacy), encoding="utf-8")

    assert store.read_day("2025-06-01") == legacy


def test_concurrent_appends_to_one_day_keep_every_record(tmp_path: Path):
    store = RecordStore(tmp_path)
    workers = [
        threading.Thread(target=store.append, args=("2025-06-01", _record(f"user-{i}")))
        for i in range(20)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    names = {entry["name"] for entry in store.read_day("2025-06-01")}
    assert names == {f"user-{i}" for i in range(20)}


def test_write_failure_raises_storage_error(tmp_path: Path, monkeypatch):
    store = RecordStore(tmp_path)

    def broken_write(_path, _entries):
        raise OSError("disk full")

    monkeypatch.setattr(store, "_write", broken_write)
    with pytest.raises(StorageError):
        store.append("2025-06-01", _record())


def test_append_reports_unverified_write(tmp_path: Path, monkeypatch):
    store = RecordStore(tmp_path)
    monkeypatch.setattr(store, "_write", lambda path, _entries: path.write_text("[]", encoding="utf-8"))

    assert store.append("2025-06-01", _record()) is False


def test_check_writable_leaves_no_files_behind(tmp_path: Path):
    store = RecordStore(tmp_path / "data")
    assert store.check_writable() is True
    assert list((tmp_path / "data").iterdir()) == []


def test_array_of_non_objects_is_a_decode_error_on_read(tmp_path: Path):
    store = RecordStore(tmp_path)
    (tmp_path / "application_2025-06-01.txt").write_text('[1, "x"]', encoding="utf-8")

    with pytest.raises(StorageError, match="expected an array of objects"):
        store.read_day("2025-06-01")
    with pytest.raises(StorageError, match="expected an array of objects"):
        store.read_all()


def test_array_of_non_objects_is_restarted_on_append(tmp_path: Path):
    store = RecordStore(tmp_path)
    (tmp_path / "application_2025-06-01.txt").write_text('[1, "x"]', encoding="utf-8")

    assert store.append("2025-06-01", _record()) is True
    assert store.read_day("2025-06-01") == [_record().model_dump()]
    assert len(list(tmp_path.glob("application_2025-06-01.txt.corrupt-*"))) == 1


def test_concurrent_writable_checks_all_succeed(tmp_path: Path):
    store = RecordStore(tmp_path)
    results = []
    workers = [threading.Thread(target=lambda: results.append(store.check_writable())) for _ in range(16)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert results == [True] * 16
    assert list(tmp_path.iterdir()) == []
