"""
Centralized path management for tw-sync.

This module handles directory resolution and provides a consistent API
for accessing configuration and log files.
"""

import os
import sys
from pathlib import Path
from typing import Optional
import logging


class PathManager:
    """Manages tw-sync file paths."""

    # Directory names
    APP_DIR_NAME = "tw-sync"
    LOG_DIR_NAME = "logs"

    # File names
    CONFIG_FILE = "config.json"

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize path manager."""
        self.logger = logger or logging.getLogger(__name__)
        self._working_dir: Optional[Path] = None

    def _default_user_dir(self) -> Path:
        """Platform-appropriate per-user data directory."""
        if sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support" / self.APP_DIR_NAME
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config).expanduser() / self.APP_DIR_NAME
        return Path.home() / ".config" / self.APP_DIR_NAME

    @property
    def working_dir(self) -> Path:
        """
        Get the working directory for tw-sync data.

        Priority order:
        1. TW_SYNC_HOME environment variable (explicit override)
        2. The platform's per-user configuration directory
        """
        if self._working_dir is not None:
            return self._working_dir

        env_override = os.environ.get("TW_SYNC_HOME")
        if env_override:
            env_path = Path(env_override).expanduser().resolve()
            self.logger.debug(f"Using TW_SYNC_HOME override: {env_path}")
            self._working_dir = env_path
        else:
            self._working_dir = self._default_user_dir()

        return self._working_dir

    @property
    def config_path(self) -> Path:
        return self.working_dir / self.CONFIG_FILE

    @property
    def log_dir(self) -> Path:
        return self.working_dir / self.LOG_DIR_NAME

    def ensure_directories(self) -> None:
        """Create the working and log directories if missing."""
        for directory in (self.working_dir, self.log_dir):
            directory.mkdir(parents=True, exist_ok=True)


_path_manager: Optional[PathManager] = None


def get_path_manager() -> PathManager:
    """Return the shared PathManager instance."""
    global _path_manager
    if _path_manager is None:
        _path_manager = PathManager()
    return _path_manager


def reset_path_manager() -> None:
    """Forget the cached PathManager (used when TW_SYNC_HOME changes)."""
    global _path_manager
    _path_manager = None
