"""Sync module for bidirectional task synchronization."""

from .engine import SyncEngine
from .resolver import RecordSynchronizer, synchronize
from .watchers import PassScheduler, TaskwarriorWatcher, RemindersWatcher, run_watch_loop

__all__ = [
    'SyncEngine',
    'RecordSynchronizer',
    'synchronize',
    'PassScheduler',
    'TaskwarriorWatcher',
    'RemindersWatcher',
    'run_watch_loop'
]
