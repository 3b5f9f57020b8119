import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from ..config import Settings
from ..db.record_store import RecordStore
from ..engines.query import get_all_applications, get_applications_by_day, list_application_days
from ..engines.submission import SAVE_FAILED_MESSAGE, submit_application
from ..errors import IntakeError, NotFoundError, ValidationError

router = APIRouter(prefix="/api", tags=["applications"])
logger = logging.getLogger(__name__)

SUBMITTED_MESSAGE = "申请提交成功"
NOT_FOUND_MESSAGE = "未找到数据"
READ_FAILED_MESSAGE = "获取申请数据失败"


class SubmitApplicationRequest(BaseModel):
    name: Any = None
    grade: Any = None
    introduction: Any = None


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _to_http_error(exc: IntakeError, fallback: str | None = None) -> HTTPException:
    detail = exc.message if fallback is None or isinstance(exc, ValidationError) else fallback
    return HTTPException(status_code=exc.status_code, detail=detail)


@router.post("/applications", status_code=201)
def create_application(
    payload: SubmitApplicationRequest,
    store: RecordStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
):
    try:
        result = submit_application(store, payload, allowed_grades=settings.allowed_grades)
    except ValidationError as exc:
        logger.info("Rejected application: %s (missing=%s)", exc.message, exc.missing)
        raise _to_http_error(exc) from exc
    except IntakeError as exc:
        logger.error("Failed to save application: %s", exc.message)
        raise _to_http_error(exc, SAVE_FAILED_MESSAGE) from exc
    return {"message": SUBMITTED_MESSAGE, "timestamp": result.timestamp}


@router.get("/applications")
def list_applications(store: RecordStore = Depends(get_store)) -> list[dict[str, Any]]:
    try:
        return get_all_applications(store)
    except IntakeError as exc:
        logger.error("Failed to read applications: %s", exc.message)
        raise _to_http_error(exc, READ_FAILED_MESSAGE) from exc


@router.get("/applications/{date}")
def get_applications_for_day(date: str, store: RecordStore = Depends(get_store)) -> list[dict[str, Any]]:
    try:
        return get_applications_by_day(store, date)
    except NotFoundError as exc:
        raise _to_http_error(exc, NOT_FOUND_MESSAGE) from exc
    except IntakeError as exc:
        logger.error("Failed to read applications for %s: %s", date, exc.message)
        raise _to_http_error(exc, READ_FAILED_MESSAGE) from exc


@router.get("/application-days")
def get_application_days(store: RecordStore = Depends(get_store)) -> list[dict[str, Any]]:
    try:
        return list_application_days(store)
    except IntakeError as exc:
        logger.error("Failed to summarise application days: %s", exc.message)
        raise _to_http_error(exc, READ_FAILED_MESSAGE) from exc
