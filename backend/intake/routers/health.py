from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from .. import __version__
from ..db.record_store import RecordStore
from .applications import get_store

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/ready")
def readiness_check(store: RecordStore = Depends(get_store)):
    return {"ready": store.check_writable(), "version": __version__}
