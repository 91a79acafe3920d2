from __future__ import annotations

from typing import Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login or device credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class PunchStateError(DomainError):
    """Illegal transition of the daily punch state machine."""

    code = "PUNCH_STATE_CONFLICT"


class AlreadyPunchedIn(PunchStateError):
    code = "ALREADY_PUNCHED_IN"


class AlreadyPunchedOut(PunchStateError):
    code = "ALREADY_PUNCHED_OUT"


class NotPunchedInYet(PunchStateError):
    code = "NOT_PUNCHED_IN_YET"


class AlreadyOnBreak(PunchStateError):
    code = "ALREADY_ON_BREAK"


class NoActiveBreak(PunchStateError):
    code = "NO_ACTIVE_BREAK"


class BreakStillOpen(PunchStateError):
    code = "BREAK_STILL_OPEN"


class InvalidPunchTime(PunchStateError):
    """Timestamp would put a punch or break out of order."""

    code = "INVALID_PUNCH_TIME"


class PersonNotResolved(DomainError):
    """A device event could not be mapped to exactly one person."""

    def __init__(self, message: str, *, candidates: Sequence[int] = ()):
        super().__init__(message)
        self.candidates = tuple(candidates)


class MalformedPayloadError(ValidationError):
    """Device payload is missing required fields or carries invalid values."""


class DeviceNotFound(DomainError):
    pass


class DeviceCommunicationError(DomainError):
    """Device unreachable, timed out or answered with garbage."""


class StorageError(Exception):
    """Persistence layer unavailable; fatal for the current request or batch."""


class DuplicateRecordError(StorageError):
    """Unique constraint violated (e.g. second record for the same person/day)."""


class ConcurrentUpdateError(StorageError):
    """Optimistic version check failed; the record changed underneath us."""
