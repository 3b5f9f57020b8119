from .record_store import RecordStore
from .records import ApplicationRecord

__all__ = ["ApplicationRecord", "RecordStore"]
