"""
Validation & Normalization

Date parsing, record invariants and pagination bounds. Everything here is
pure: "now" is always passed in by the caller so one operation sees a single
instant.

Dates travel as timezone-aware UTC datetimes. expires_at must not precede
created_at (full timestamps) and must not fall on a day before today.
"""

from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

from .record import Record

DATE_FORMAT = "%d-%m-%Y"

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class ParseError(ValueError):
    """A date string did not match DD-MM-YYYY."""
    pass


class InvalidDateRange(ValueError):
    """expires_at is before created_at or already in the past."""
    pass


class InvalidField(ValueError):
    """A required field is empty or out of range."""
    pass


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(text: Optional[str]) -> datetime:
    """Parse ``DD-MM-YYYY`` into UTC midnight of that day."""
    if not text:
        raise ParseError("date is required, expected DD-MM-YYYY")
    try:
        parsed = datetime.strptime(text.strip(), DATE_FORMAT)
    except ValueError as e:
        raise ParseError(f"invalid date {text!r}, expected DD-MM-YYYY") from e
    return parsed.replace(tzinfo=timezone.utc)


def parse_optional_date(text: Optional[str]) -> Optional[datetime]:
    """Like parse_date, but empty input means "not given"."""
    if text is None or not text.strip():
        return None
    return parse_date(text)


def check_fields(record: Record) -> None:
    if not record.service_name or not record.service_name.strip():
        raise InvalidField("service_name must not be empty")
    if not record.user_id or not record.user_id.strip():
        raise InvalidField("user_id must not be empty")
    if record.price is None or record.price < 0:
        raise InvalidField("price must be >= 0")


def check_date_range(created_at: datetime, expires_at: datetime, now: datetime) -> None:
    """
    Enforce the validity window invariant.

    Ordering against created_at compares full timestamps. The "not in the
    past" check compares calendar days, so an expiry of today is accepted.
    """
    expires_at = as_utc(expires_at)
    if expires_at < as_utc(created_at):
        raise InvalidDateRange("expires_at must not be before created_at")
    if expires_at.date() < as_utc(now).date():
        raise InvalidDateRange("expires_at must not be in the past")


def normalize_record(record: Record, now: datetime) -> Record:
    """
    Return a copy of ``record`` ready to persist.

    Fills a missing created_at with ``now``, converts both timestamps to UTC
    and checks the field and date invariants.
    """
    check_fields(record)
    created_at = as_utc(record.created_at) if record.created_at else as_utc(now)
    expires_at = as_utc(record.expires_at)
    check_date_range(created_at, expires_at, now)
    return replace(record, created_at=created_at, expires_at=expires_at)


def clamp_pagination(limit: Optional[int], offset: Optional[int]) -> Tuple[int, int]:
    """
    Bound pagination inputs.

    A zero, missing or negative limit becomes DEFAULT_LIMIT; anything above
    MAX_LIMIT is clamped. The offset is passed through untouched.
    """
    if not limit or limit < 0:
        limit = DEFAULT_LIMIT
    elif limit > MAX_LIMIT:
        limit = MAX_LIMIT
    return limit, offset or 0


def normalize_filter(value: Optional[str]) -> Optional[str]:
    """Empty filters mean "no filter"."""
    if value is None or value == "":
        return None
    return value


def period_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    """
    Convert an inclusive day range into a half-open UTC interval.

    ``[start, end]`` becomes ``[start 00:00, end + 1 day 00:00)``, so sums
    over adjacent day ranges add up exactly.
    """
    if isinstance(start, datetime):
        start = as_utc(start).date()
    if isinstance(end, datetime):
        end = as_utc(end).date()
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper
