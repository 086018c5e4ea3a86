"""
Utility functions for tw-sync.
"""

from .io import safe_read_json, safe_write_json
from .date import (
    parse_taskwarrior_date, format_taskwarrior_date, ensure_aware, truncate_seconds
)
from .macos import is_macos, set_process_name

__all__ = [
    # I/O utilities
    'safe_read_json',
    'safe_write_json',
    # Date utilities
    'parse_taskwarrior_date',
    'format_taskwarrior_date',
    'ensure_aware',
    'truncate_seconds',
    # macOS helpers
    'is_macos',
    'set_process_name'
]
