"""
Record Store Contract

What the service needs from a store, and the two errors a store may raise.
Stores signal "nothing matched" with RecordNotFoundError and every other
failure with StorageError.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from .record import Record


class StorageError(Exception):
    """Raised when the underlying store fails to execute a query."""
    pass


class RecordNotFoundError(StorageError):
    """No row matched or was affected."""
    pass


@runtime_checkable
class RecordStore(Protocol):
    """Capabilities the service needs from a store."""

    def save(self, record: Record) -> Record: ...

    def delete_by_id(self, record_id: int) -> None: ...

    def get_by_id(self, record_id: int) -> Record: ...

    def get_by_user(self, user_id: str) -> List[Record]: ...

    def get_by_user_and_service(self, user_id: str, service_name: str) -> Record: ...

    def update(self, record: Record) -> Record: ...

    def list_records(
        self,
        limit: int,
        offset: int,
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> List[Record]: ...

    def sum_for_period(
        self,
        period: Tuple[datetime, datetime],
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> int: ...
