from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3001"
NETWORK_ERROR_MESSAGE = "网络错误，请稍后重试"
SUBMIT_FAILED_MESSAGE = "提交失败，请稍后重试"


class SubmissionFailed(RuntimeError):
    """Raised when the intake server rejects or cannot be reached."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _error_message(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    try:
        payload = json.loads(text)
    except ValueError:
        return text or SUBMIT_FAILED_MESSAGE
    if isinstance(payload, dict):
        for key in ("message", "error"):
            if payload.get(key):
                return str(payload[key])
    return text or SUBMIT_FAILED_MESSAGE


class ApplicationsClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 20):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        body = json.dumps(dict(payload), ensure_ascii=False).encode("utf-8") if payload is not None else None
        request = Request(
            f"{self.base_url}{path}",
            data=body,
            method=method,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        try:
            with urlopen(request, timeout=self.timeout) as response:  # noqa: S310
                return json.loads(response.read().decode("utf-8"))
        except HTTPError as exc:
            message = _error_message(exc.read())
            logger.error("%s %s failed with %s: %s", method, path, exc.code, message)
            raise SubmissionFailed(message, status=exc.code) from exc
        except (URLError, OSError, ValueError) as exc:
            logger.exception("%s %s failed", method, path)
            raise SubmissionFailed(NETWORK_ERROR_MESSAGE) from exc

    def submit_form(self, fields: Mapping[str, str]) -> dict[str, Any]:
        return self._request(
            "POST",
            "/api/applications",
            {key: fields.get(key, "") for key in ("name", "grade", "introduction")},
        )

    def submit(self, name: str, grade: str, introduction: str) -> dict[str, Any]:
        return self.submit_form({"name": name, "grade": grade, "introduction": introduction})

    def fetch_all(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/applications")

    def fetch_day(self, day_key: str) -> list[dict[str, Any]]:
        return self._request("GET", f"/api/applications/{quote(day_key)}")
