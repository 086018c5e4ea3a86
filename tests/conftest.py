#!/usr/bin/env python3
"""
Global pytest configuration and fixtures.

This module provides:
- Platform-specific test skipping (macOS/EventKit tests)
- In-memory task and reminder stores for engine tests
- Common test fixtures and utilities
"""

import copy
import os
import platform
import shutil
import sys
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Dict, Generator, List, Optional, Set

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tw_sync.core.exceptions import (
    NotFoundError,
    RemindersError,
    TaskwarriorError,
    WriteConflictError,
)
from tw_sync.core.models import ReminderData, ReminderList, StoreResult, Task, TaskStatus
from tw_sync.core.paths import reset_path_manager

HAS_EVENTKIT = False

try:
    if platform.system() == "Darwin":
        import objc
        import EventKit
        HAS_EVENTKIT = True
except ImportError:
    pass


def pytest_configure(config):
    """Configure pytest environment."""
    config.addinivalue_line("markers", "macos: test requires the Darwin platform")
    config.addinivalue_line("markers", "eventkit: test requires EventKit framework")


def pytest_collection_modifyitems(config, items):
    """
    Modify test collection to skip platform-specific tests.

    Automatically skip macOS/EventKit tests on non-Darwin platforms.
    """
    skip_macos = pytest.mark.skip(reason="macOS/EventKit tests require Darwin platform")
    skip_eventkit = pytest.mark.skip(reason="Test requires EventKit framework")

    for item in items:
        if "macos" in item.keywords and platform.system() != "Darwin":
            item.add_marker(skip_macos)

        if "eventkit" in item.keywords and not HAS_EVENTKIT:
            item.add_marker(skip_eventkit)


# In-memory stores

class Clock:
    """Monotonic fake clock; every call advances by one minute."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(minutes=1)
        return self.now


class FakeTaskStore:
    """Task store keeping Tasks in a dict, stamping every write with the clock."""

    def __init__(self, clock: Clock):
        self.clock = clock
        self.tasks: Dict[str, Task] = {}
        self.writes = 0
        self.conflicts_to_raise = 0
        self.fail_titles: Set[str] = set()
        self._next_id = 0

    def add(self, task: Task) -> Task:
        """Seed a task without counting it as a write."""
        if not task.uuid:
            task = task.copy(uuid=self._new_uuid())
        self.tasks[task.uuid] = task.copy()
        return task

    def _new_uuid(self) -> str:
        self._next_id += 1
        return f"task-{self._next_id}"

    def list_tasks(self, modified_since: datetime) -> List[Task]:
        return [task.copy() for task in self.tasks.values() if task.last_modified > modified_since]

    def load_task(self, uuid: str) -> Task:
        if uuid not in self.tasks:
            raise NotFoundError(f"Task {uuid} not found")
        return self.tasks[uuid].copy()

    def find_by_external_id(self, external_id: str) -> Optional[Task]:
        for task in self.tasks.values():
            if task.external_id == external_id:
                return task.copy()
        return None

    def save_task(self, task: Task, expected_modified: Optional[datetime] = None) -> StoreResult:
        if task.title in self.fail_titles:
            return StoreResult.failure(TaskwarriorError(f"cannot save '{task.title}'"))
        if self.conflicts_to_raise:
            self.conflicts_to_raise -= 1
            return StoreResult.failure(WriteConflictError(f"task '{task.title}' changed"))

        existing = self.tasks.get(task.uuid) if task.uuid else None
        if existing and expected_modified is not None and existing.last_modified > expected_modified:
            return StoreResult.failure(WriteConflictError(f"task '{task.title}' changed"))

        status = task.status
        if status == TaskStatus.UNKNOWN:
            status = TaskStatus.PENDING

        uuid = task.uuid or self._new_uuid()
        self.tasks[uuid] = task.copy(uuid=uuid, status=status, last_modified=self.clock())
        self.writes += 1
        return StoreResult.success(uuid)

    def delete_task(self, task: Task) -> StoreResult:
        if task.uuid not in self.tasks:
            return StoreResult.failure(NotFoundError(f"Task {task.uuid} not found"))
        current = self.tasks[task.uuid]
        self.tasks[task.uuid] = current.copy(status=TaskStatus.DELETED, last_modified=self.clock())
        self.writes += 1
        return StoreResult.success(task.uuid)


class FakeReminderStore:
    """Reminder store keeping ReminderData snapshots in a dict."""

    def __init__(self, clock: Clock, default_list_name: str = "Reminders"):
        self.clock = clock
        self.default_list_name = default_list_name
        self.reminders: Dict[str, ReminderData] = {}
        self.lists: List[str] = [default_list_name]
        self.writes = 0
        self.conflicts_to_raise = 0
        self.fail_titles: Set[str] = set()
        self._next_id = 0

    def add(self, reminder: ReminderData) -> ReminderData:
        """Seed a reminder without counting it as a write."""
        self.reminders[reminder.identifier] = copy.deepcopy(reminder)
        return reminder

    def list_changed(self, modified_since: datetime) -> List[str]:
        return [
            rem.identifier for rem in self.reminders.values()
            if rem.modified_at is not None and rem.modified_at > modified_since
        ]

    def fetch(self, external_id: Optional[str]) -> Optional[ReminderData]:
        if not external_id or external_id not in self.reminders:
            return None
        return copy.deepcopy(self.reminders[external_id])

    def fetch_or_create(self, external_id: Optional[str]) -> ReminderData:
        existing = self.fetch(external_id)
        if existing is not None:
            return existing
        self._next_id += 1
        created = ReminderData(
            identifier=f"rem-{self._next_id}",
            calendar_name=self.default_list_name,
            modified_at=self.clock(),
        )
        self.reminders[created.identifier] = created
        self.writes += 1
        return copy.deepcopy(created)

    def save(self, reminder: ReminderData) -> StoreResult:
        if reminder.title in self.fail_titles:
            return StoreResult.failure(RemindersError(f"cannot save '{reminder.title}'"))
        if self.conflicts_to_raise:
            self.conflicts_to_raise -= 1
            return StoreResult.failure(WriteConflictError(f"reminder '{reminder.title}' changed"))
        if reminder.identifier not in self.reminders:
            return StoreResult.failure(NotFoundError(f"Reminder {reminder.identifier} not found"))

        stored = copy.deepcopy(reminder)
        stored.modified_at = self.clock()
        self.reminders[reminder.identifier] = stored
        self.writes += 1
        return StoreResult.success(reminder.identifier)

    def remove(self, reminder: ReminderData) -> StoreResult:
        self.reminders.pop(reminder.identifier, None)
        self.writes += 1
        return StoreResult.success(reminder.identifier)

    def categories(self) -> List[ReminderList]:
        return [ReminderList(name=name, identifier=f"list-{name}") for name in self.lists]

    def ensure_category(self, name: str) -> str:
        if name not in self.lists:
            self.lists.append(name)
        return f"list-{name}"

    def default_category_name(self) -> str:
        return self.default_list_name


# Common test fixtures

@pytest.fixture
def temp_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test isolation."""
    temp_path = tempfile.mkdtemp(prefix="tw_sync_test_")
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def tw_sync_home(temp_dir: str, monkeypatch) -> Generator[str, None, None]:
    """Point the tw-sync working directory at a temp dir."""
    monkeypatch.setenv("TW_SYNC_HOME", temp_dir)
    reset_path_manager()
    try:
        yield temp_dir
    finally:
        reset_path_manager()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def task_store(clock: Clock) -> FakeTaskStore:
    return FakeTaskStore(clock)


@pytest.fixture
def reminder_store(clock: Clock) -> FakeReminderStore:
    return FakeReminderStore(clock)
