"""
Data Models for Persistence Layer

These models mirror the core domain objects but are optimized for database storage.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from ..core.record import Record


def to_db_timestamp(value: datetime) -> str:
    """Fixed-width UTC ISO string, so SQLite text comparison orders correctly."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse a stored timestamp (SQLite text or PostgreSQL TIMESTAMPTZ)."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class RecordRow:
    """Persisted subscription record."""
    service_name: str
    price: int
    user_id: str
    created_at: str
    expires_at: str
    id: Optional[int] = None

    def to_db_tuple(self) -> tuple:
        """Convert to database insert tuple."""
        return (
            self.service_name,
            self.price,
            self.user_id,
            self.created_at,
            self.expires_at,
        )

    def to_record(self) -> Record:
        return Record(
            id=self.id,
            service_name=self.service_name,
            price=self.price,
            user_id=self.user_id,
            created_at=from_db_timestamp(self.created_at),
            expires_at=from_db_timestamp(self.expires_at),
        )

    @classmethod
    def from_record(cls, record: Record) -> "RecordRow":
        return cls(
            id=record.id,
            service_name=record.service_name,
            price=record.price,
            user_id=record.user_id,
            created_at=to_db_timestamp(record.created_at) if record.created_at else None,
            expires_at=to_db_timestamp(record.expires_at),
        )

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RecordRow":
        # PostgreSQL hands back datetimes, SQLite hands back text
        created_at = row["created_at"]
        if isinstance(created_at, datetime):
            created_at = to_db_timestamp(created_at)

        expires_at = row["expires_at"]
        if isinstance(expires_at, datetime):
            expires_at = to_db_timestamp(expires_at)

        return cls(
            id=row["id"],
            service_name=row["service_name"],
            price=row["price"],
            user_id=row["user_id"],
            created_at=created_at,
            expires_at=expires_at,
        )
