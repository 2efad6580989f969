"""
Workflow exceptions shared by all clinic apps.

Every error raised by the workflow core carries a structured ``kind`` so that
callers branch on the error type instead of parsing messages. The HTTP layer
translates them to responses via ``to_dict()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    INVALID_STATE = 'INVALID_STATE'
    INVALID_TRANSITION = 'INVALID_TRANSITION'
    LOCK_CONFLICT = 'LOCK_CONFLICT'
    LOCK_EXPIRED = 'LOCK_EXPIRED'
    LOCK_LIMIT_EXCEEDED = 'LOCK_LIMIT_EXCEEDED'
    UNAUTHORIZED = 'UNAUTHORIZED'
    VERSION_CONFLICT = 'VERSION_CONFLICT'
    NOT_FOUND = 'NOT_FOUND'
    VALIDATION_ERROR = 'VALIDATION_ERROR'


@dataclass
class Conflict:
    """A single existing booking that blocks a requested theater interval."""
    model: str  # 'TheaterBooking'
    id: int | None = None
    status: str | None = None
    resource_id: int | None = None
    message: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result = {'model': self.model}
        if self.id is not None:
            result['id'] = self.id
        if self.status:
            result['status'] = self.status
        if self.resource_id is not None:
            result['resource_id'] = self.resource_id
        if self.message:
            result['message'] = self.message
        if self.meta:
            result['meta'] = self.meta
        return result


class WorkflowError(Exception):
    """Base exception for all workflow errors."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR
    default_message = 'Workflow error'

    def __init__(self, message: str | None = None, **meta: Any):
        self.message = message or self.default_message
        self.meta = meta
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            'kind': self.kind.value,
            'detail': self.message,
        }
        result.update({k: v for k, v in self.meta.items() if v is not None})
        return result


class InvalidState(WorkflowError):
    """Operation attempted from a state that forbids it."""
    kind = ErrorKind.INVALID_STATE
    default_message = 'Operation not allowed in the current state'


class InvalidTransition(WorkflowError):
    """Status change not present in the transition table."""
    kind = ErrorKind.INVALID_TRANSITION
    default_message = 'Status transition not allowed'

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f'Cannot transition from {current} to {target}',
            current=current,
            target=target,
        )


class LockConflict(WorkflowError):
    """
    Raised when a theater interval overlaps a confirmed or live provisional booking.

    Contains a list of Conflict objects describing each blocking booking.
    """
    kind = ErrorKind.LOCK_CONFLICT
    default_message = 'Theater is already booked or locked for this time slot'

    def __init__(self, conflicts: list[Conflict], message: str | None = None):
        self.conflicts = conflicts
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result['conflicts'] = [c.to_dict() for c in self.conflicts]
        return result


class LockExpired(WorkflowError):
    kind = ErrorKind.LOCK_EXPIRED
    default_message = 'Booking lock has expired. Please lock the slot again.'


class LockLimitExceeded(WorkflowError):
    kind = ErrorKind.LOCK_LIMIT_EXCEEDED
    default_message = 'Maximum number of active theater locks reached'


class Unauthorized(WorkflowError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = 'Not allowed for this user'


class VersionConflict(WorkflowError):
    kind = ErrorKind.VERSION_CONFLICT
    default_message = 'Record has been updated by another session. Please refresh and try again.'


class NotFound(WorkflowError):
    kind = ErrorKind.NOT_FOUND
    default_message = 'Not found'


class ValidationFailed(WorkflowError):
    """
    Raised for malformed commands and timeline ordering/range violations.

    ``errors`` is a list of ``{'field': ..., 'message': ...}`` dicts, all
    problems found in one pass.
    """
    kind = ErrorKind.VALIDATION_ERROR
    default_message = 'Validation failed'

    def __init__(self, errors: list[dict[str, Any]] | None = None, message: str | None = None):
        self.errors = list(errors or [])
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result['errors'] = self.errors
        return result
