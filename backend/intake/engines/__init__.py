"""Submission and query workflows over the record store."""

from .query import get_all_applications, get_applications_by_day, list_application_days
from .submission import SubmissionResult, clean_fields, submit_application

__all__ = [
    "clean_fields",
    "get_all_applications",
    "get_applications_by_day",
    "list_application_days",
    "submit_application",
    "SubmissionResult",
]
