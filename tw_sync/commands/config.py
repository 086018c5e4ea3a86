"""Config command - show or initialize the configuration file."""

import json
import logging
from typing import Optional

from ..core.config import get_default_config_path, save_config
from ..core.models import SyncConfig


class ConfigCommand:
    """Prints the effective configuration or writes it to disk."""

    def __init__(self, config: SyncConfig, config_path: Optional[str] = None, verbose: bool = False):
        self.config = config
        self.config_path = config_path
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)

    def run(self, show: bool = False, init: bool = False) -> bool:
        if init:
            save_config(self.config, self.config_path)
            print(f"Wrote configuration to {self.config_path or get_default_config_path()}")
            return True

        print(json.dumps(self.config.to_dict(), indent=2))
        return True
