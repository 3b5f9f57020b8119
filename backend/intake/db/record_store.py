"""Append-only, day-partitioned JSON store for submitted applications.

Each calendar day lives in its own ``application_<YYYY-MM-DD>.txt`` file
holding a JSON array. Appends rewrite the whole array through a temporary
file and ``os.replace``; a per-partition lock serializes appends inside one
process. Separate processes writing the same data directory are not
coordinated.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any
from uuid import uuid4

from ..errors import NotFoundError, StorageError
from .records import ApplicationRecord, validate_day_key

logger = logging.getLogger(__name__)

PARTITION_PREFIX = "application_"
PARTITION_SUFFIX = ".txt"
WRITE_CHECK_FILENAME = ".write-check"


def _to_entry(record: ApplicationRecord | dict[str, Any]) -> dict[str, Any]:
    if isinstance(record, ApplicationRecord):
        return record.model_dump()
    return dict(record)


def _dump(entries: list[dict[str, Any]]) -> str:
    return json.dumps(entries, ensure_ascii=False, indent=2)


class RecordStore:
    def __init__(self, data_dir: str | Path):
        self.data_dir = Path(data_dir)
        self._locks: dict[str, Lock] = {}
        self._locks_guard = Lock()

    def ensure_data_dir(self) -> None:
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created data directory: %s", self.data_dir)

    def partition_path(self, day_key: str) -> Path:
        key = validate_day_key(day_key)
        return self.data_dir / f"{PARTITION_PREFIX}{key}{PARTITION_SUFFIX}"

    def _lock_for(self, day_key: str) -> Lock:
        with self._locks_guard:
            lock = self._locks.get(day_key)
            if lock is None:
                lock = Lock()
                self._locks[day_key] = lock
            return lock

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, day_key: str, record: ApplicationRecord | dict[str, Any]) -> bool:
        """Append ``record`` to the partition for ``day_key``.

        Returns ``True`` once the rewritten file has been read back with the
        new record as its last entry, ``False`` if that check fails.
        Raises ``StorageError`` when the file system refuses the write.
        """
        path = self.partition_path(day_key)
        entry = _to_entry(record)

        with self._lock_for(day_key):
            try:
                self.ensure_data_dir()
                entries = self._load_for_append(path)
                entries.append(entry)
                self._write(path, entries)
            except OSError as exc:
                logger.exception("Error writing partition %s", path)
                raise StorageError("Failed to save application") from exc
            return self._verify(path, entry)

    def _load_for_append(self, path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        raw = path.read_bytes()
        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError:
            data = None
        if isinstance(data, list) and all(isinstance(entry, dict) for entry in data):
            return data

        backup = self._backup_corrupt(path)
        logger.warning(
            "Partition %s is not an array of records, starting it over (previous content kept at %s)",
            path.name,
            backup.name,
        )
        return []

    def _backup_corrupt(self, path: Path) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        backup = path.with_name(f"{path.name}.corrupt-{stamp}")
        shutil.copy2(path, backup)
        return backup

    def _write(self, path: Path, entries: list[dict[str, Any]]) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(_dump(entries), encoding="utf-8")
        os.replace(tmp_path, path)

    def _verify(self, path: Path, entry: dict[str, Any]) -> bool:
        try:
            size = path.stat().st_size
            saved = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.exception("Could not read back partition %s", path.name)
            return False
        if not isinstance(saved, list) or not saved or saved[-1] != entry:
            logger.error("Partition %s does not end with the appended record", path.name)
            return False
        logger.debug("Partition %s: %d bytes, %d entries", path.name, size, len(saved))
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_day(self, day_key: str) -> list[dict[str, Any]]:
        path = self.partition_path(day_key)
        if not path.exists():
            raise NotFoundError(f"No applications found for {day_key}")
        return self._load_strict(path)

    def read_all(self) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        for day_key in self.list_days():
            entries.extend(self._load_strict(self.partition_path(day_key)))
        return entries

    def list_days(self) -> list[str]:
        try:
            self.ensure_data_dir()
            names = sorted(p.name for p in self.data_dir.glob(f"{PARTITION_PREFIX}*{PARTITION_SUFFIX}"))
        except OSError as exc:
            logger.exception("Error listing data directory %s", self.data_dir)
            raise StorageError("Failed to list application files") from exc

        days: list[str] = []
        for name in names:
            key = name[len(PARTITION_PREFIX):-len(PARTITION_SUFFIX)]
            try:
                days.append(validate_day_key(key))
            except ValueError:
                logger.warning("Skipping unrecognised partition file %s", name)
        return days

    def _load_strict(self, path: Path) -> list[dict[str, Any]]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            logger.exception("Error reading partition %s", path.name)
            raise StorageError(f"Failed to read {path.name}") from exc
        except ValueError as exc:
            logger.error("Partition %s is not valid JSON: %s", path.name, exc)
            raise StorageError(f"Failed to decode {path.name}") from exc
        if not isinstance(data, list) or not all(isinstance(entry, dict) for entry in data):
            logger.error("Partition %s is not an array of records", path.name)
            raise StorageError(f"Failed to decode {path.name}: expected an array of objects")
        return data

    # ------------------------------------------------------------------
    # Startup write check
    # ------------------------------------------------------------------

    def check_writable(self) -> bool:
        scratch = self.data_dir / f"{WRITE_CHECK_FILENAME}-{os.getpid()}-{uuid4().hex[:8]}"
        try:
            self.ensure_data_dir()
            scratch.write_text("Test write access\n", encoding="utf-8")
            content = scratch.read_text(encoding="utf-8")
            scratch.unlink()
        except OSError:
            logger.exception("File system test failed for %s", self.data_dir)
            return False
        return content == "Test write access\n"
