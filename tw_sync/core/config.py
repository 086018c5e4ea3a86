"""
Configuration management for tw-sync.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .models import EPOCH, SyncConfig
from .paths import get_path_manager


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return get_path_manager().config_path


def load_config(config_path: Optional[str] = None) -> SyncConfig:
    """
    Load configuration from file or return defaults.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        SyncConfig object
    """
    if config_path is None:
        config_path = str(get_default_config_path())

    return SyncConfig.load_from_file(config_path)


def save_config(config: SyncConfig, config_path: Optional[str] = None):
    """
    Save configuration to file.

    Args:
        config: SyncConfig object to save
        config_path: Optional path to save to. Uses default if not provided.
    """
    if config_path is None:
        manager = get_path_manager()
        manager.ensure_directories()
        config_path = str(manager.config_path)

    config_dir = os.path.dirname(os.path.abspath(os.path.expanduser(config_path)))
    os.makedirs(config_dir, exist_ok=True)

    config.save_to_file(config_path)


def get_log_dir() -> Path:
    """Get the log directory."""
    manager = get_path_manager()
    manager.ensure_directories()
    return manager.log_dir


def install_time() -> datetime:
    """Return when this copy of tw_sync was installed.

    Uses the modification time of the installed package so items created
    before installation are not swept into the first sync.
    """
    import tw_sync

    try:
        mtime = os.path.getmtime(tw_sync.__file__)
    except OSError:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(mtime, tz=timezone.utc)


def resolve_watermark(config: SyncConfig, sync_all: bool = False) -> datetime:
    """
    Compute the timestamp below which changes are ignored.

    Args:
        config: Loaded configuration; an explicit ``sync_since`` wins over
            the install time.
        sync_all: ``--all`` was requested; everything is synced.

    Returns:
        Timezone-aware watermark
    """
    if sync_all:
        return EPOCH
    configured = config.sync_since_datetime
    if configured is not None:
        return configured
    return install_time()
