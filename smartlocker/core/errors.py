from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_ARGUMENT = "invalid_argument"
    PRECONDITION_FAILED = "precondition_failed"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class SmartLockerError(Exception):
    """Base class of every error surfaced to callers of the lifecycle use cases."""

    kind: ErrorKind


class NotFoundError(SmartLockerError):
    """Raise to map to HTTP 404."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(SmartLockerError):
    """Raise to map to HTTP 409."""

    kind = ErrorKind.CONFLICT


class InvalidArgumentError(SmartLockerError):
    """Raise to map to HTTP 422."""

    kind = ErrorKind.INVALID_ARGUMENT


class PreconditionFailedError(SmartLockerError):
    """Raise to map to HTTP 412."""

    kind = ErrorKind.PRECONDITION_FAILED


class StorageUnavailable(SmartLockerError):
    """Persistence failure, kept apart from the domain kinds. Maps to HTTP 503."""

    kind = ErrorKind.STORAGE_UNAVAILABLE


class LockerNotFound(NotFoundError):
    def __init__(self, locker_id: int) -> None:
        super().__init__(f"Locker {locker_id} not found")
        self.locker_id = locker_id


class SessionNotFound(NotFoundError):
    def __init__(self, session_id: int) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class LockerUnavailable(ConflictError):
    def __init__(self, locker_id: int, status: str) -> None:
        super().__init__(f"Locker {locker_id} is not available (status={status!r})")
        self.locker_id = locker_id
        self.status = status


class SessionAlreadyActive(ConflictError):
    def __init__(self, user_id: int, session_id: int | None) -> None:
        super().__init__(f"User {user_id} already has an active session ({session_id})")
        self.user_id = user_id
        self.session_id = session_id


class InvalidDuration(InvalidArgumentError):
    def __init__(self, hours: object, max_hours: int) -> None:
        super().__init__(f"Planned duration must be in (0, {max_hours}] hours, got {hours}")
        self.hours = hours
        self.max_hours = max_hours


class SessionNotActive(PreconditionFailedError):
    def __init__(self, session_id: int, status: str) -> None:
        super().__init__(f"Session {session_id} is not active (status={status!r})")
        self.session_id = session_id
        self.status = status


class SessionStillActive(PreconditionFailedError):
    def __init__(self, session_id: int) -> None:
        super().__init__(f"Session {session_id} is still active")
        self.session_id = session_id
