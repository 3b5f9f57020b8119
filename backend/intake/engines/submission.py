from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from ..db.record_store import RecordStore
from ..db.records import ApplicationRecord, day_key_for, format_timestamp, utc_now
from ..errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "grade", "introduction")
MISSING_FIELDS_MESSAGE = "所有字段都是必填的"
SAVE_FAILED_MESSAGE = "服务器错误，请稍后重试"


@dataclass(frozen=True)
class SubmissionResult:
    timestamp: str
    day_key: str


def _as_mapping(payload: Mapping[str, Any] | BaseModel | None) -> Mapping[str, Any]:
    if payload is None:
        return {}
    if isinstance(payload, BaseModel):
        return payload.model_dump()
    return payload


def clean_fields(payload: Mapping[str, Any] | BaseModel | None) -> dict[str, str]:
    """Strip the required fields, raising ``ValidationError`` if any is empty."""
    data = _as_mapping(payload)
    cleaned: dict[str, str] = {}
    missing: list[str] = []
    for field in REQUIRED_FIELDS:
        value = data.get(field)
        text = value.strip() if isinstance(value, str) else ""
        if not text:
            missing.append(field)
            continue
        cleaned[field] = text
    if missing:
        raise ValidationError(MISSING_FIELDS_MESSAGE, missing=missing)
    return cleaned


def submit_application(
    store: RecordStore,
    payload: Mapping[str, Any] | BaseModel | None,
    *,
    now: datetime | None = None,
    allowed_grades: Iterable[str] | None = None,
) -> SubmissionResult:
    fields = clean_fields(payload)
    if allowed_grades is not None and fields["grade"] not in set(allowed_grades):
        raise ValidationError(f"Unknown grade: {fields['grade']}", missing=[])

    moment = now or utc_now()
    timestamp = format_timestamp(moment)
    day_key = day_key_for(moment)
    record = ApplicationRecord(timestamp=timestamp, **fields)

    logger.info("Saving application from %s to partition %s", fields["name"], day_key)
    if not store.append(day_key, record):
        raise StorageError(SAVE_FAILED_MESSAGE)
    return SubmissionResult(timestamp=timestamp, day_key=day_key)
