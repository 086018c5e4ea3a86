"""macOS-specific helpers."""

from __future__ import annotations

import logging
import platform
from typing import Optional


def is_macos() -> bool:
    return platform.system() == "Darwin"


def set_process_name(name: str, logger: Optional[logging.Logger] = None) -> bool:
    """Set the current process name on macOS when PyObjC is available."""
    if not is_macos():
        return False

    try:
        from Foundation import NSProcessInfo  # type: ignore
    except ImportError:
        if logger:
            logger.debug("PyObjC not installed; cannot set process name")
        return False

    process_info = NSProcessInfo.processInfo()
    if process_info.processName() != name:
        process_info.setProcessName_(name)
    return True
