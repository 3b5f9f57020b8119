from __future__ import annotations

import re
from datetime import date, datetime, timezone

from pydantic import BaseModel

from ..errors import ValidationError

DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ApplicationRecord(BaseModel):
    timestamp: str
    name: str
    grade: str
    introduction: str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """Render ``moment`` as ``2025-06-01T08:30:00.123Z``."""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def day_key_for(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d")


def parse_timestamp(value: object) -> datetime:
    """Parse a stored timestamp; unparsable values sort as the oldest."""
    raw = str(value or "").strip()
    if not raw:
        return _EPOCH
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_day_key(day_key: str) -> str:
    key = str(day_key or "").strip()
    if not DAY_KEY_RE.match(key):
        raise ValidationError(f"Invalid date '{day_key}', expected YYYY-MM-DD")
    try:
        date.fromisoformat(key)
    except ValueError as exc:
        raise ValidationError(f"Invalid date '{day_key}', expected YYYY-MM-DD") from exc
    return key
