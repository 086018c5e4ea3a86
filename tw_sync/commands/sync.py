"""Sync command - run one reconciliation pass per direction."""

import logging

from ..core.models import SyncConfig
from ..sync.engine import summarize
from .stores import build_engine, open_stores


class SyncCommand:
    """Command for synchronizing tasks between Taskwarrior and Reminders."""

    def __init__(self, config: SyncConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def run(self, direction: str = "both", dry_run: bool = False, sync_all: bool = False) -> bool:
        """Run the sync command. Returns False if any item failed."""
        task_store, reminder_store = open_stores(self.config, logger=self.logger)
        engine = build_engine(
            self.config,
            task_store,
            reminder_store,
            sync_all=sync_all,
            dry_run=dry_run,
            logger=self.logger,
        )

        if dry_run:
            print("Dry run: no changes will be written.")
        results = engine.sync(direction)

        for line in summarize(results):
            print(line)

        failures = sum(summary["failed"] + summary["skipped"] for summary in results.values())
        if failures:
            print(f"{failures} item(s) were not synced. Re-run with --verbose for details.")
        return failures == 0
