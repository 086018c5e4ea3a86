"""Change watchers and the per-store pass scheduler used by ``tw-sync watch``."""

import os
import threading
import time
from typing import Any, Callable, Optional
import logging

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ..core.exceptions import StoreUnavailableError


class PassScheduler:
    """Runs one store's sync pass on a dedicated worker thread.

    ``request`` never blocks. At most one pass runs at a time, and any number
    of requests that arrive while a pass is running collapse into a single
    follow-up pass.
    """

    def __init__(
        self,
        name: str,
        run_pass: Callable[[], Any],
        logger: Optional[logging.Logger] = None,
        poll_interval: float = 0.5,
    ):
        self.name = name
        self.run_pass = run_pass
        self.logger = logger or logging.getLogger(__name__)
        self.poll_interval = poll_interval
        self.passes_run = 0

        self._requested = threading.Event()
        self._stopping = threading.Event()
        self._idle = threading.Event()
        self._idle.set()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._loop, name=f"tw-sync-{self.name}", daemon=True
        )
        self._thread.start()

    def request(self) -> None:
        with self._lock:
            self._idle.clear()
            self._requested.set()

    def _loop(self) -> None:
        while not self._stopping.is_set():
            self._requested.wait(self.poll_interval)
            if self._stopping.is_set():
                break

            with self._lock:
                if not self._requested.is_set():
                    continue
                self._requested.clear()

            try:
                self.run_pass()
            except StoreUnavailableError as e:
                self.logger.warning(f"{self.name} pass aborted, store unavailable: {e}")
            except Exception as e:
                self.logger.error(f"{self.name} pass failed: {e}", exc_info=True)
            finally:
                self.passes_run += 1

            with self._lock:
                if not self._requested.is_set():
                    self._idle.set()

        self._idle.set()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no pass is running or pending."""
        return self._idle.wait(timeout)

    def stop(self, timeout: float = 5.0) -> None:
        self._stopping.set()
        self._requested.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def is_task_data_file(path: str) -> bool:
    """Taskwarrior 2 keeps ``*.data`` files, Taskwarrior 3 a SQLite database."""
    name = os.path.basename(path)
    return name.endswith(".data") or name.startswith("taskchampion.sqlite3")


class TaskDataEventHandler(FileSystemEventHandler):
    """Forwards writes to Taskwarrior's data files as change notifications."""

    def __init__(self, on_change: Callable[[], None]):
        self.on_change = on_change

    def on_any_event(self, event):
        if event.is_directory:
            return
        paths = [event.src_path, getattr(event, "dest_path", "")]
        if any(path and is_task_data_file(path) for path in paths):
            self.on_change()


class TaskwarriorWatcher:
    """Watches the Taskwarrior data directory with a watchdog observer."""

    def __init__(
        self,
        data_dir: str,
        on_change: Callable[[], None],
        logger: Optional[logging.Logger] = None,
    ):
        self.data_dir = data_dir
        self.on_change = on_change
        self.logger = logger or logging.getLogger(__name__)
        self._observer = None

    def start(self) -> None:
        if not os.path.isdir(self.data_dir):
            raise StoreUnavailableError(
                f"Taskwarrior data directory {self.data_dir} does not exist"
            )
        self._observer = Observer()
        self._observer.schedule(TaskDataEventHandler(self.on_change), self.data_dir, recursive=False)
        self._observer.start()
        self.logger.info(f"Watching Taskwarrior data in {self.data_dir}")

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None


class RemindersWatcher:
    """Listens for EventKit store change notifications."""

    def __init__(
        self,
        gateway,
        on_change: Callable[[], None],
        logger: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway
        self.on_change = on_change
        self.logger = logger or logging.getLogger(__name__)
        self._token = None

    def start(self) -> None:
        self._token = self.gateway.add_change_observer(self.on_change)
        self.logger.info("Watching Reminders for changes")

    def stop(self) -> None:
        if self._token is None:
            return
        self.gateway.remove_change_observer(self._token)
        self._token = None


def run_watch_loop(
    gateway=None,
    stop_event: Optional[threading.Event] = None,
    interval: float = 1.0,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Keep the main thread alive until interrupted.

    EventKit delivers notifications on the main run loop, so with a gateway
    the loop spins it; otherwise it just sleeps.
    """
    logger = logger or logging.getLogger(__name__)
    stop_event = stop_event or threading.Event()
    try:
        while not stop_event.is_set():
            if gateway is not None:
                gateway.run_loop_once(interval)
            else:
                time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping watchers")
