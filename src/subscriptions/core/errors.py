"""
Record Service Error Taxonomy

Callers (the HTTP layer in particular) distinguish failures by class:

- ValidationFailed  -> bad input or broken date invariant (400)
- NotFound          -> no row matched / was affected (404)
- PersistenceFailed -> the store failed; cause is chained (500)
- AggregationFailed -> the period sum query failed (500)
"""

from typing import Optional


class RecordServiceError(Exception):
    """Base class for every error raised by the record service."""

    def __init__(self, operation: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.cause = cause


class ValidationFailed(RecordServiceError):
    """Input rejected before reaching the store."""
    pass


class NotFound(RecordServiceError):
    """No record matched the targeted operation."""
    pass


class PersistenceFailed(RecordServiceError):
    """The store reported an error."""
    pass


class AggregationFailed(RecordServiceError):
    """The period sum could not be computed."""
    pass
