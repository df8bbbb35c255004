"""
Persistence Layer for Subscription Records

Supports SQLite (dev) and PostgreSQL (production).
"""

from ..core.store import RecordNotFoundError, StorageError
from .database import Database
from .models import RecordRow
from .repository import RecordRepository

__all__ = [
    "Database",
    "StorageError",
    "RecordRow",
    "RecordRepository",
    "RecordNotFoundError",
]
