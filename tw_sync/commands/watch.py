"""Watch command - keep both stores in sync until interrupted."""

import logging

from ..core.config import get_log_dir
from ..core.models import SyncConfig
from ..sync.watchers import (
    PassScheduler,
    RemindersWatcher,
    TaskwarriorWatcher,
    run_watch_loop,
)
from .stores import build_engine, open_stores


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class WatchCommand:
    """Runs a pass whenever either store reports a change."""

    def __init__(self, config: SyncConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose
        self.logger = logging.getLogger(__name__)
        if verbose:
            self.logger.setLevel(logging.DEBUG)

    def _add_file_handler(self):
        log_path = self.config.log_path
        if not log_path:
            return None
        get_log_dir()
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)
        self.logger.info(f"Logging to {log_path}")
        return handler

    def run(self, sync_all: bool = False) -> bool:
        handler = self._add_file_handler()
        try:
            task_store, reminder_store = open_stores(self.config, logger=self.logger)
            engine = build_engine(
                self.config, task_store, reminder_store, sync_all=sync_all, logger=self.logger
            )

            schedulers = [
                PassScheduler("taskwarrior", engine.sync_from_taskwarrior, logger=self.logger),
                PassScheduler("reminders", engine.sync_from_reminders, logger=self.logger),
            ]
            tw_scheduler, rem_scheduler = schedulers
            watchers = [
                TaskwarriorWatcher(
                    self.config.taskwarrior_data_dir, tw_scheduler.request, logger=self.logger
                ),
                RemindersWatcher(reminder_store.gateway, rem_scheduler.request, logger=self.logger),
            ]

            for scheduler in schedulers:
                scheduler.start()
                scheduler.request()
            for watcher in watchers:
                watcher.start()

            print("Watching Taskwarrior and Reminders. Press Ctrl-C to stop.")
            try:
                run_watch_loop(gateway=reminder_store.gateway, logger=self.logger)
            finally:
                for watcher in watchers:
                    watcher.stop()
                for scheduler in schedulers:
                    scheduler.stop()
            return True
        finally:
            if handler is not None:
                logging.getLogger().removeHandler(handler)
                handler.close()
