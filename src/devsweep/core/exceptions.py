"""devsweep exception hierarchy."""

from __future__ import annotations


class DevSweepError(Exception):
    """Base exception for all devsweep errors."""


class InputError(DevSweepError):
    """Item list is malformed; the run never starts."""

    def __init__(self, message: str, invalid_items: list[str] | None = None) -> None:
        self.invalid_items = invalid_items or []
        super().__init__(message)


class EmptyInputError(InputError):
    """No usable items were supplied for a new run."""


class RemoteError(DevSweepError):
    """A directory service call failed."""


class TransientRemoteError(RemoteError):
    """Retryable remote failure (rate limit, backend or internal error)."""

    def __init__(self, message: str, signal: str, status_code: int | None = None) -> None:
        self.signal = signal
        self.status_code = status_code
        super().__init__(message)


class FatalRemoteError(RemoteError):
    """Non-retryable remote failure, or retries exhausted."""

    def __init__(self, message: str, attempts: int = 1, exhausted: bool = False) -> None:
        self.attempts = attempts
        self.exhausted = exhausted
        super().__init__(message)


class NotFoundError(RemoteError):
    """Account or unit does not exist. Terminal for the item, not an error."""


class PersistenceError(DevSweepError):
    """Durable key-value store operation failed."""


class SchedulerError(DevSweepError):
    """Continuation scheduler operation failed."""
