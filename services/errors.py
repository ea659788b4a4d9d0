"""
Kanban Error Taxonomy

Every failure raised by the ordering core and the domain services derives
from KanbanError and carries the HTTP status the API layer should answer
with. Raising any of them inside utils.db.atomic() rolls the whole
transaction back.
"""

from typing import Optional


class KanbanError(Exception):
    """Base class for all errors surfaced to API callers."""

    http_status = 500
    code = "kanban_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self):
        data = {
            'success': False,
            'error': self.code,
            'message': self.message,
        }
        if self.details:
            data['details'] = self.details
        return data


class NotFoundError(KanbanError):
    """Referenced item or parent scope does not exist (or is not visible to the caller)."""

    http_status = 404
    code = "not_found"


class InvalidPositionError(KanbanError):
    """Requested position falls outside the scope's valid range."""

    http_status = 400
    code = "invalid_position"


class ValidationError(KanbanError):
    """Malformed or inconsistent request input."""

    http_status = 400
    code = "validation_error"


class ConcurrencyConflictError(KanbanError):
    """
    The scope was modified concurrently.

    Storage-level conflicts (lock timeouts, serialization failures) are
    retryable; a stale caller-supplied position is not, because retrying
    with the same stale value can never succeed.
    """

    http_status = 409
    code = "concurrency_conflict"

    def __init__(self, message: str, details: Optional[dict] = None, retryable: bool = True):
        super().__init__(message, details)
        self.retryable = retryable


class StorageFailureError(KanbanError):
    """Transaction could not commit for reasons unrelated to business rules."""

    http_status = 503
    code = "storage_failure"


class PermissionDeniedError(KanbanError):
    """Caller is authenticated but may not touch this resource."""

    http_status = 403
    code = "forbidden"
