"""Errors raised by the sync pipeline."""


class SyncError(Exception):
    """Base error for this package."""


class SourceUnavailable(SyncError):
    """Raised when the initial bulk read fails. Fatal for the run."""


class ApplyFailure(SyncError):
    """Raised when a single write against the store fails.

    Non-fatal: the applier records it and moves on to the next change.
    """
    def __init__(self, message: str, record_id=None, status: int | None = None):
        super().__init__(message)
        self.record_id = record_id
        self.status = status


class ConfigurationError(SyncError):
    """Raised for a malformed or missing profile / field name, before any reads."""
