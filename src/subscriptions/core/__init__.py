"""
Subscription Records - Core Module

Domain record, validation rules and the service error taxonomy. The
RecordService itself lives in ``subscriptions.core.service``; the store
contract it depends on is in ``subscriptions.core.store``.
"""

from .record import Record
from .errors import (
    RecordServiceError,
    ValidationFailed,
    NotFound,
    PersistenceFailed,
    AggregationFailed,
)
from .store import RecordStore, StorageError, RecordNotFoundError
from .validation import ParseError, InvalidDateRange, InvalidField

__all__ = [
    "Record",
    "RecordServiceError",
    "ValidationFailed",
    "NotFound",
    "PersistenceFailed",
    "AggregationFailed",
    "RecordStore",
    "StorageError",
    "RecordNotFoundError",
    "ParseError",
    "InvalidDateRange",
    "InvalidField",
]
