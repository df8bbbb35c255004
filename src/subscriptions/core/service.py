"""
Record Service

The only entry point for business operations on subscription records. It
validates input, calls the store once per operation, and translates store
failures into the service error taxonomy. Every failure is logged once, with
the operation name, before it is raised.
"""

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable, List, Optional
import structlog

from .errors import AggregationFailed, NotFound, PersistenceFailed, ValidationFailed
from .record import Record
from .store import RecordNotFoundError, RecordStore, StorageError
from . import validation

logger = structlog.get_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordService:
    """
    Orchestrates validation and persistence for subscription records.

    Args:
        store: Anything implementing RecordStore (RecordRepository in production).
        log: structlog logger; defaults to the module logger.
        clock: Returns the current instant. Read once per operation.
    """

    def __init__(
        self,
        store: RecordStore,
        log: Optional[Any] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.log = log or logger
        self.clock = clock

    def _validate(self, op: str, record: Record) -> Record:
        now = self.clock()
        try:
            return validation.normalize_record(record, now)
        except ValueError as e:
            self.log.warning("record_validation_failed", operation=op, error=str(e))
            raise ValidationFailed(op, str(e), e) from e

    def create(self, record: Record) -> Record:
        """Validate and persist a new record; returns it with its id."""
        op = "RecordService.create"
        log = self.log.bind(operation=op)
        log.info("record_create_started", user_id=record.user_id, service_name=record.service_name)

        normalized = self._validate(op, replace(record, id=None))

        try:
            saved = self.store.save(normalized)
        except StorageError as e:
            log.error("record_create_failed", error=str(e))
            raise PersistenceFailed(op, "could not create record", e) from e

        log.info("record_created", record_id=saved.id)
        return saved

    def update(self, record: Record) -> None:
        """
        Validate and fully replace an existing record.

        A missing created_at defaults to the operation's "now", exactly as on
        create, and that validated value is what gets stored.
        """
        op = "RecordService.update"
        log = self.log.bind(operation=op, record_id=record.id)
        log.info("record_update_started")

        normalized = self._validate(op, record)

        try:
            self.store.update(normalized)
        except RecordNotFoundError as e:
            log.warning("record_update_failed", error=str(e))
            raise NotFound(op, "record not found", e) from e
        except StorageError as e:
            log.error("record_update_failed", error=str(e))
            raise PersistenceFailed(op, "could not update record", e) from e

        log.info("record_updated")

    def delete_by_id(self, record_id: int) -> None:
        op = "RecordService.delete_by_id"
        log = self.log.bind(operation=op, record_id=record_id)
        log.info("record_delete_started")

        try:
            self.store.delete_by_id(record_id)
        except RecordNotFoundError as e:
            log.warning("record_delete_failed", error=str(e))
            raise NotFound(op, "record not found", e) from e
        except StorageError as e:
            log.error("record_delete_failed", error=str(e))
            raise PersistenceFailed(op, "could not delete record", e) from e

        log.info("record_deleted")

    def get_by_id(self, record_id: int) -> Record:
        op = "RecordService.get_by_id"
        log = self.log.bind(operation=op, record_id=record_id)

        try:
            record = self.store.get_by_id(record_id)
        except RecordNotFoundError as e:
            log.warning("record_get_failed", error=str(e))
            raise NotFound(op, "record not found", e) from e
        except StorageError as e:
            log.error("record_get_failed", error=str(e))
            raise PersistenceFailed(op, "could not get record", e) from e

        log.debug("record_retrieved")
        return record

    def get_by_user(self, user_id: str) -> List[Record]:
        """All records for a user; an unknown user simply has none."""
        op = "RecordService.get_by_user"
        log = self.log.bind(operation=op, user_id=user_id)

        try:
            records = self.store.get_by_user(user_id)
        except StorageError as e:
            log.error("records_get_failed", error=str(e))
            raise PersistenceFailed(op, "could not get records", e) from e

        log.debug("records_retrieved", count=len(records))
        return records

    def get_by_user_and_service(self, user_id: str, service_name: str) -> Record:
        op = "RecordService.get_by_user_and_service"
        log = self.log.bind(operation=op, user_id=user_id, service_name=service_name)

        try:
            record = self.store.get_by_user_and_service(user_id, service_name)
        except RecordNotFoundError as e:
            log.warning("record_get_failed", error=str(e))
            raise NotFound(op, "record not found", e) from e
        except StorageError as e:
            log.error("record_get_failed", error=str(e))
            raise PersistenceFailed(op, "could not get record", e) from e

        log.debug("record_retrieved", record_id=record.id)
        return record

    def list_records(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> List[Record]:
        """
        One page of records, newest first.

        Filters are AND-combined; empty filters are ignored. The page size is
        clamped (see validation.clamp_pagination). No total count is returned.
        """
        op = "RecordService.list_records"
        limit, offset = validation.clamp_pagination(limit, offset)
        user_id = validation.normalize_filter(user_id)
        service_name = validation.normalize_filter(service_name)
        log = self.log.bind(operation=op, limit=limit, offset=offset)

        try:
            records = self.store.list_records(limit, offset, user_id, service_name)
        except StorageError as e:
            log.error("records_list_failed", error=str(e))
            raise PersistenceFailed(op, "could not list records", e) from e

        log.debug("records_listed", count=len(records))
        return records

    def sum_for_period(
        self,
        start: date,
        end: date,
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> int:
        """
        Total price of records created within the inclusive day range.

        Returns 0 when nothing matches. The caller is expected to have
        rejected ``end < start``.
        """
        op = "RecordService.sum_for_period"
        log = self.log.bind(operation=op, start=str(start), end=str(end))

        period = validation.period_bounds(start, end)
        try:
            total = self.store.sum_for_period(
                period,
                validation.normalize_filter(user_id),
                validation.normalize_filter(service_name),
            )
        except StorageError as e:
            log.error("records_sum_failed", error=str(e))
            raise AggregationFailed(op, "could not sum records", e) from e

        log.info("records_summed", total=total)
        return total
