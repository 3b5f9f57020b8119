"""Client-side form state: one submission, at most one withdrawal.

The rule lives entirely in the client's own storage. The server accepts every
valid submission it receives, so a withdrawal never touches server data.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..db.records import format_timestamp, utc_now
from ..engines.submission import REQUIRED_FIELDS, clean_fields
from ..errors import ValidationError
from .api import NETWORK_ERROR_MESSAGE, SubmissionFailed
from .storage import Storage

logger = logging.getLogger(__name__)

SUBMITTED_KEY = "formSubmitted"
WITHDRAWN_KEY = "formWithdrawn"

ALREADY_SUBMITTED_MESSAGE = "您已提交过申请，不能重复提交"
RESTORED_MESSAGE = "您已成功提交申请，请勿重复提交"
SUBMITTED_MESSAGE = "报名成功！我们会尽快处理您的申请"
WITHDRAWN_MESSAGE = "申请已撤回，您可以修改信息后重新提交（仅有一次撤回机会）"
WITHDRAWAL_USED_MESSAGE = "您已经使用过撤回机会，不能再次撤回"
NOTHING_TO_WITHDRAW_MESSAGE = "您尚未提交申请，无需撤回"
MISSING_FIELDS_MESSAGE = "请填写所有必需信息"

Submitter = Callable[[Mapping[str, str]], Mapping[str, Any]]


class FormStatus(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    WITHDRAWN = "withdrawn"


@dataclass(frozen=True)
class FormMessage:
    kind: str = ""
    content: str = ""

    @property
    def is_error(self) -> bool:
        return self.kind == "error"


def _empty_form() -> dict[str, str]:
    return {field: "" for field in REQUIRED_FIELDS}


class FormSession:
    def __init__(self, storage: Storage, submitter: Submitter | None = None, clock=utc_now):
        self.storage = storage
        self.submitter = submitter
        self._clock = clock
        self.data = _empty_form()
        self.has_submitted = False
        self.has_withdrawn = False
        self.submitted_at: str | None = None
        self.message = FormMessage()
        self.load()

    @property
    def status(self) -> FormStatus:
        if self.has_submitted:
            return FormStatus.SUBMITTED
        if self.has_withdrawn:
            return FormStatus.WITHDRAWN
        return FormStatus.IDLE

    @property
    def editable(self) -> bool:
        return not self.has_submitted

    @property
    def can_withdraw(self) -> bool:
        return self.has_submitted and not self.has_withdrawn

    def _set_message(self, kind: str, content: str) -> FormMessage:
        self.message = FormMessage(kind, content)
        return self.message

    def load(self) -> None:
        raw = self.storage.get(SUBMITTED_KEY)
        if raw:
            try:
                marker = json.loads(raw)
                if marker.get("submitted"):
                    saved = marker.get("data") or {}
                    self.data = {field: str(saved.get(field) or "") for field in REQUIRED_FIELDS}
                    self.submitted_at = marker.get("timestamp")
                    self.has_submitted = True
                    self._set_message("success", RESTORED_MESSAGE)
            except (ValueError, AttributeError):
                logger.exception("Error parsing submission status")
                self.storage.remove(SUBMITTED_KEY)

        if self.storage.get(WITHDRAWN_KEY):
            self.has_withdrawn = True

    def update_field(self, name: str, value: str) -> bool:
        if not self.editable or name not in self.data:
            return False
        self.data[name] = value
        return True

    def submit(self) -> FormMessage:
        if self.has_submitted:
            return self._set_message("error", ALREADY_SUBMITTED_MESSAGE)
        try:
            fields = clean_fields(self.data)
        except ValidationError:
            return self._set_message("error", MISSING_FIELDS_MESSAGE)
        if self.submitter is None:
            return self._set_message("error", NETWORK_ERROR_MESSAGE)

        try:
            response = self.submitter(fields)
        except SubmissionFailed as exc:
            return self._set_message("error", exc.message or NETWORK_ERROR_MESSAGE)

        body = response if isinstance(response, Mapping) else {}
        timestamp = body.get("timestamp") or format_timestamp(self._clock())
        self.storage.set(
            SUBMITTED_KEY,
            json.dumps({"submitted": True, "data": fields, "timestamp": timestamp}, ensure_ascii=False),
        )
        self.data = dict(fields)
        self.submitted_at = timestamp
        self.has_submitted = True
        return self._set_message("success", body.get("message") or SUBMITTED_MESSAGE)

    def withdraw(self) -> FormMessage:
        if self.has_withdrawn:
            return self._set_message("error", WITHDRAWAL_USED_MESSAGE)
        if not self.has_submitted:
            return self._set_message("error", NOTHING_TO_WITHDRAW_MESSAGE)

        self.storage.set(WITHDRAWN_KEY, "true")
        self.storage.remove(SUBMITTED_KEY)
        self.has_withdrawn = True
        self.has_submitted = False
        self.submitted_at = None
        return self._set_message("success", WITHDRAWN_MESSAGE)

    def reset(self) -> FormMessage:
        self.storage.remove(SUBMITTED_KEY)
        self.storage.remove(WITHDRAWN_KEY)
        self.has_submitted = False
        self.has_withdrawn = False
        self.submitted_at = None
        self.data = _empty_form()
        return self._set_message("", "")
