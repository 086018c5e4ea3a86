"""
Exception classes for tw-sync.
"""


class TwSyncError(Exception):
    """Base exception for all tw-sync errors."""
    pass


class ConfigurationError(TwSyncError):
    """Raised when configuration is invalid or a required tool is missing."""
    pass


class PermissionDeniedError(TwSyncError):
    """Raised when a store refuses access. Fatal at startup."""
    pass


class StoreUnavailableError(TwSyncError):
    """Raised when a store cannot be reached at all; aborts the current pass."""
    pass


class NotFoundError(TwSyncError):
    """Raised when a paired record cannot be found."""
    pass


class WriteConflictError(TwSyncError):
    """Raised when a record changed between load and save."""
    pass


class TaskwarriorError(TwSyncError):
    """Raised when a single Taskwarrior command fails."""
    pass


class RemindersError(TwSyncError):
    """Base exception for Reminders-related errors."""
    pass


class AuthorizationError(PermissionDeniedError, RemindersError):
    """Raised when EventKit authorization fails."""
    pass


class EventKitImportError(PermissionDeniedError, RemindersError):
    """Raised when EventKit/PyObjC dependencies are not available."""
    pass


class SyncError(TwSyncError):
    """Raised when a sync pass cannot complete."""
    pass


class TranscodeLoss(UserWarning):
    """Information lost while converting between task and reminder fields.

    Never raised; only reported through logging.
    """
    pass
