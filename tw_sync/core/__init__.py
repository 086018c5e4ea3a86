"""
Core module for tw-sync - contains domain models, configuration, and exceptions.
"""

from .models import (
    Task,
    Annotation,
    TaskStatus,
    Priority,
    SyncResult,
    ReminderData,
    ReminderList,
    DueComponents,
    Alarm,
    StoreResult,
    SyncConfig
)

from .exceptions import (
    TwSyncError,
    ConfigurationError,
    PermissionDeniedError,
    StoreUnavailableError,
    NotFoundError,
    WriteConflictError,
    TaskwarriorError,
    RemindersError,
    AuthorizationError,
    EventKitImportError,
    SyncError,
    TranscodeLoss
)

__all__ = [
    # Models
    'Task',
    'Annotation',
    'TaskStatus',
    'Priority',
    'SyncResult',
    'ReminderData',
    'ReminderList',
    'DueComponents',
    'Alarm',
    'StoreResult',
    'SyncConfig',
    # Exceptions
    'TwSyncError',
    'ConfigurationError',
    'PermissionDeniedError',
    'StoreUnavailableError',
    'NotFoundError',
    'WriteConflictError',
    'TaskwarriorError',
    'RemindersError',
    'AuthorizationError',
    'EventKitImportError',
    'SyncError',
    'TranscodeLoss'
]
