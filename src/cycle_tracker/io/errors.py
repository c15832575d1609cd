"""
Errors surfaced by storage and identity operations.

None of these are retried automatically; they are reported to the caller,
which may re-trigger the operation.
"""


class TrackerError(Exception):
    """Base class for cycle-tracker operation failures."""


class LoadFailure(TrackerError):
    """A plan or tracking document could not be read."""

    def __init__(self, operation: str, key: str, reason: str = "") -> None:
        self.operation = operation
        self.key = key
        self.reason = reason
        message = f"Failed to {operation} ({key})"
        super().__init__(f"{message}: {reason}" if reason else message)


class SaveFailure(TrackerError):
    """A write for a save, toggle, cycle change, create or delete failed."""

    def __init__(self, operation: str, key: str, reason: str = "") -> None:
        self.operation = operation
        self.key = key
        self.reason = reason
        message = f"Failed to {operation} ({key})"
        super().__init__(f"{message}: {reason}" if reason else message)


class AuthFailure(TrackerError):
    """The user identity could not be established."""
