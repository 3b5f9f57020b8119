"""Form client: local submission state plus the HTTP submitter."""

from .api import ApplicationsClient, SubmissionFailed
from .form_state import FormMessage, FormSession, FormStatus
from .storage import JsonFileStorage, MemoryStorage, Storage

__all__ = [
    "ApplicationsClient",
    "FormMessage",
    "FormSession",
    "FormStatus",
    "JsonFileStorage",
    "MemoryStorage",
    "Storage",
    "SubmissionFailed",
]
