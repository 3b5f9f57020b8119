from __future__ import annotations

from typing import Any

from ..db.record_store import RecordStore
from ..db.records import parse_timestamp


def get_applications_by_day(store: RecordStore, day_key: str) -> list[dict[str, Any]]:
    return store.read_day(day_key)


def get_all_applications(store: RecordStore) -> list[dict[str, Any]]:
    """Every stored application, newest first.

    ``sorted`` is stable, so records sharing a timestamp keep read order.
    """
    entries = store.read_all()
    return sorted(
        entries,
        key=lambda entry: parse_timestamp(entry.get("timestamp") if isinstance(entry, dict) else None),
        reverse=True,
    )


def list_application_days(store: RecordStore) -> list[dict[str, Any]]:
    return [{"day": day, "count": len(store.read_day(day))} for day in store.list_days()]
