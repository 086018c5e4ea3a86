"""
Command implementations for tw-sync.
"""

from .sync import SyncCommand
from .watch import WatchCommand
from .config import ConfigCommand

__all__ = [
    'SyncCommand',
    'WatchCommand',
    'ConfigCommand',
]
