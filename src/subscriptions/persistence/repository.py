"""
Repository Layer for Subscription Records

Translates record operations into SQL. No validation and no business rules:
a targeted operation that matches nothing raises RecordNotFoundError, any
driver failure surfaces as StorageError.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple
import structlog

from ..core.record import Record
from ..core.store import RecordNotFoundError
from .database import Database
from .models import RecordRow, to_db_timestamp

logger = structlog.get_logger()

RECORD_COLUMNS = "id, service_name, price, user_id, created_at, expires_at"


def _apply_filters(
    clauses: List[str],
    params: List[Any],
    user_id: Optional[str],
    service_name: Optional[str],
) -> None:
    # Empty filters impose no constraint
    if user_id:
        clauses.append("user_id = ?")
        params.append(user_id)
    if service_name:
        clauses.append("service_name = ?")
        params.append(service_name)


def _where(clauses: List[str]) -> str:
    return f" WHERE {' AND '.join(clauses)}" if clauses else ""


class RecordRepository:
    """Repository for subscription records."""

    def __init__(self, db: Database):
        self.db = db

    def save(self, record: Record) -> Record:
        """Insert a record and return it with the store-assigned id."""
        row = RecordRow.from_record(record)
        if row.created_at is None:
            results = self.db.execute(
                f"""INSERT INTO records (service_name, price, user_id, expires_at)
                   VALUES (?, ?, ?, ?) RETURNING {RECORD_COLUMNS}""",
                (row.service_name, row.price, row.user_id, row.expires_at)
            )
        else:
            results = self.db.execute(
                f"""INSERT INTO records (service_name, price, user_id, created_at, expires_at)
                   VALUES (?, ?, ?, ?, ?) RETURNING {RECORD_COLUMNS}""",
                row.to_db_tuple()
            )
        saved = RecordRow.from_row(results[0]).to_record()
        logger.debug("record_inserted", record_id=saved.id, user_id=saved.user_id)
        return saved

    def delete_by_id(self, record_id: int) -> None:
        results = self.db.execute(
            "DELETE FROM records WHERE id = ? RETURNING id",
            (record_id,)
        )
        if not results:
            raise RecordNotFoundError(f"record {record_id} not found")

    def get_by_id(self, record_id: int) -> Record:
        results = self.db.execute(
            f"SELECT {RECORD_COLUMNS} FROM records WHERE id = ?",
            (record_id,)
        )
        if not results:
            raise RecordNotFoundError(f"record {record_id} not found")
        return RecordRow.from_row(results[0]).to_record()

    def get_by_user(self, user_id: str) -> List[Record]:
        """Get all records for a user, newest first."""
        results = self.db.execute(
            f"SELECT {RECORD_COLUMNS} FROM records WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,)
        )
        return [RecordRow.from_row(r).to_record() for r in results]

    def get_by_user_and_service(self, user_id: str, service_name: str) -> Record:
        results = self.db.execute(
            f"""SELECT {RECORD_COLUMNS} FROM records
               WHERE user_id = ? AND service_name = ? ORDER BY id ASC LIMIT 1""",
            (user_id, service_name)
        )
        if not results:
            raise RecordNotFoundError(f"no record for user {user_id} and service {service_name}")
        return RecordRow.from_row(results[0]).to_record()

    def update(self, record: Record) -> Record:
        """Replace every field of an existing record except its id."""
        row = RecordRow.from_record(record)
        results = self.db.execute(
            f"""UPDATE records SET service_name = ?, price = ?, user_id = ?, created_at = ?, expires_at = ?
               WHERE id = ? RETURNING {RECORD_COLUMNS}""",
            (*row.to_db_tuple(), row.id)
        )
        if not results:
            raise RecordNotFoundError(f"record {record.id} not found")
        return RecordRow.from_row(results[0]).to_record()

    def list_records(
        self,
        limit: int,
        offset: int,
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> List[Record]:
        """List records newest first, with optional filters and pagination."""
        clauses: List[str] = []
        params: List[Any] = []
        _apply_filters(clauses, params, user_id, service_name)

        query = f"SELECT {RECORD_COLUMNS} FROM records{_where(clauses)} ORDER BY created_at DESC, id DESC"

        if limit > 0:
            query += " LIMIT ?"
            params.append(limit)
        elif offset > 0 and not self.db.is_postgres:
            # SQLite only accepts OFFSET after a LIMIT clause
            query += " LIMIT -1"

        if offset > 0:
            query += " OFFSET ?"
            params.append(offset)

        results = self.db.execute(query, tuple(params))
        return [RecordRow.from_row(r).to_record() for r in results]

    def sum_for_period(
        self,
        period: Tuple[datetime, datetime],
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> int:
        """Sum price over records with created_at in the half-open period."""
        lower, upper = period
        clauses = ["created_at >= ?", "created_at < ?"]
        params: List[Any] = [to_db_timestamp(lower), to_db_timestamp(upper)]
        _apply_filters(clauses, params, user_id, service_name)

        results = self.db.execute(
            f"SELECT COALESCE(SUM(price), 0) AS total FROM records{_where(clauses)}",
            tuple(params)
        )
        if not results:
            return 0
        return int(results[0]["total"] or 0)
