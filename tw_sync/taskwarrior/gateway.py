"""Thin wrapper around the Taskwarrior command line."""

import json
import os
import subprocess
from typing import Any, Dict, List, Optional, Sequence
import logging

from ..core.exceptions import (
    ConfigurationError,
    PermissionDeniedError,
    StoreUnavailableError,
    TaskwarriorError,
)


class TaskwarriorGateway:
    """Runs ``task`` commands and exchanges tasks as export/import JSON."""

    # Overrides that keep task from prompting or printing chatter
    RC_OVERRIDES = (
        "rc.confirmation=off",
        "rc.bulk=0",
        "rc.verbose=nothing",
        "rc.json.array=on",
    )

    def __init__(
        self,
        command: str = "task",
        data_dir: Optional[str] = None,
        uda_names: Sequence[str] = (),
        logger: Optional[logging.Logger] = None,
    ):
        self.command = command
        self.data_dir = data_dir
        self.uda_names = tuple(uda_names)
        self.logger = logger or logging.getLogger(__name__)

    def _base_args(self) -> List[str]:
        args = [self.command, *self.RC_OVERRIDES]
        if self.data_dir:
            args.append(f"rc.data.location={self.data_dir}")
        # Declare the sync UDAs so filters work without .taskrc changes
        for name in self.uda_names:
            args.append(f"rc.uda.{name}.type=string")
        return args

    def _run(self, *args: str, input_text: Optional[str] = None) -> str:
        """Run task and return stdout; failures raise store errors."""
        cmd = self._base_args() + list(args)
        self.logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                input=input_text,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise StoreUnavailableError(f"Taskwarrior binary '{self.command}' not found: {e}") from e
        except PermissionError as e:
            raise PermissionDeniedError(f"Not allowed to run '{self.command}': {e}") from e

        if result.returncode != 0:
            message = (result.stderr or result.stdout or "").strip()
            raise TaskwarriorError(
                f"'task {' '.join(args)}' exited with {result.returncode}: {message}"
            )

        return result.stdout

    def verify(self) -> str:
        """
        Check that Taskwarrior can be run and its data directory is usable.

        Returns:
            The Taskwarrior version string

        Raises:
            ConfigurationError: binary missing or not runnable
            PermissionDeniedError: data directory not readable/writable
        """
        if self.data_dir and os.path.isdir(self.data_dir):
            if not os.access(self.data_dir, os.R_OK | os.W_OK):
                raise PermissionDeniedError(
                    f"Taskwarrior data directory {self.data_dir} is not readable and writable.\n"
                    "Fix its permissions or point 'taskwarrior.data_dir' in the config elsewhere."
                )

        try:
            version = self._run("_version").strip()
        except StoreUnavailableError as e:
            raise ConfigurationError(
                f"{e}\n"
                "Install Taskwarrior (https://taskwarrior.org) or set 'taskwarrior.command' "
                "in the tw-sync config."
            ) from e
        except TaskwarriorError as e:
            raise ConfigurationError(f"Taskwarrior is not usable: {e}") from e

        self.logger.debug(f"Taskwarrior version {version}")
        return version

    def export(self, *filters: str) -> List[Dict[str, Any]]:
        """Export tasks matching the filters as a list of JSON objects."""
        output = self._run(*filters, "export")
        if not output.strip():
            return []
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise TaskwarriorError(f"Could not parse 'task export' output: {e}") from e
        if isinstance(data, dict):
            return [data]
        return list(data)

    def import_tasks(self, tasks: List[Dict[str, Any]]) -> None:
        """Create or replace tasks by UUID through ``task import``."""
        self._run("import", "-", input_text=json.dumps(tasks))

    def delete(self, uuid: str) -> None:
        self._run(uuid, "delete")
