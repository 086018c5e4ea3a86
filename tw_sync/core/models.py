"""
Domain models for tw-sync.

This module contains the core data structures shared by the transcoders,
the record synchronizer and the store adapters.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import os

from .exceptions import ConfigurationError
from .paths import get_path_manager
from ..utils.io import safe_read_json, safe_write_json


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _normalize_path(path: str) -> str:
    """Expand user and convert to absolute path."""
    return os.path.abspath(os.path.expanduser(path))


def _datetime_to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _iso_to_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class TaskStatus(Enum):
    """Task status in the store-agnostic vocabulary."""

    PENDING = "pending"
    COMPLETED = "completed"
    DELETED = "deleted"
    UNKNOWN = "unknown"


class Priority(Enum):
    """Task priority levels."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Annotation:
    """A single free-text note attached to a task."""

    text: str
    entry: Optional[datetime] = field(default=None, compare=False)


@dataclass
class Task:
    """A logical task, independent of the store it was read from."""

    title: str
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.NONE
    project: Optional[str] = None
    external_id: Optional[str] = None
    uuid: Optional[str] = None
    last_modified: datetime = EPOCH
    due: Optional[datetime] = None
    notes: List[Annotation] = field(default_factory=list)

    def is_deleted(self) -> bool:
        return self.status == TaskStatus.DELETED

    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def copy(self, **changes) -> Task:
        """Return a copy with its own notes list and the given fields replaced."""
        changes.setdefault("notes", list(self.notes))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority.value,
            "project": self.project,
            "external_id": self.external_id,
            "uuid": self.uuid,
            "last_modified": _datetime_to_iso(self.last_modified),
            "due": _datetime_to_iso(self.due),
            "notes": [note.text for note in self.notes],
        }


@dataclass
class SyncResult:
    """Outcome of reconciling one logical item."""

    task: Task
    made_changes: bool


@dataclass
class DueComponents:
    """Local-calendar date components as stored on a reminder."""

    year: int
    month: int
    day: int
    hour: Optional[int] = None
    minute: Optional[int] = None
    second: Optional[int] = None


@dataclass
class Alarm:
    """A reminder alarm, relative to the due date."""

    relative_offset: float = 0.0
    alarm_type: str = "display"


@dataclass
class ReminderData:
    """Snapshot of a reminder as read from (or to be written to) the store."""

    identifier: str
    title: str = ""
    completed: bool = False
    priority: int = 0
    calendar_name: Optional[str] = None
    due_components: Optional[DueComponents] = None
    alarms: List[Alarm] = field(default_factory=list)
    notes: str = ""
    modified_at: Optional[datetime] = None


@dataclass
class ReminderList:
    """Represents an Apple Reminders list (a reminder "category")."""

    name: str
    identifier: str


@dataclass
class StoreResult:
    """Outcome of a single store write."""

    ok: bool
    error: Optional[Exception] = None
    value: Optional[str] = None

    @classmethod
    def success(cls, value: Optional[str] = None) -> StoreResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: Exception) -> StoreResult:
        return cls(ok=False, error=error)


MISSING_REMINDER_POLICIES = ("recreate", "delete_task")


@dataclass
class SyncConfig:
    """Configuration for sync operations."""

    task_command: str = "task"
    taskwarrior_data_dir: str = "~/.task"
    reminder_id_uda: str = "reminderID"
    default_list_name: Optional[str] = None
    sync_since: Optional[str] = None
    missing_reminder_policy: str = "recreate"
    import_completed_reminders: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        self.taskwarrior_data_dir = _normalize_path(self.taskwarrior_data_dir)
        if self.missing_reminder_policy not in MISSING_REMINDER_POLICIES:
            raise ConfigurationError(
                f"Unknown missing_reminder_policy '{self.missing_reminder_policy}'; "
                f"expected one of {', '.join(MISSING_REMINDER_POLICIES)}"
            )
        self.log_level = (self.log_level or "INFO").upper()

    @property
    def sync_since_datetime(self) -> Optional[datetime]:
        return _iso_to_datetime(self.sync_since)

    @property
    def log_path(self) -> Optional[str]:
        """Absolute log file path; relative names live in the log directory."""
        if not self.log_file:
            return None
        if os.path.isabs(os.path.expanduser(self.log_file)):
            return _normalize_path(self.log_file)
        return str(get_path_manager().log_dir / self.log_file)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskwarrior": {
                "command": self.task_command,
                "data_dir": self.taskwarrior_data_dir,
                "reminder_id_uda": self.reminder_id_uda,
            },
            "reminders": {
                "default_list_name": self.default_list_name,
            },
            "sync": {
                "since": self.sync_since,
                "missing_reminder_policy": self.missing_reminder_policy,
                "import_completed_reminders": self.import_completed_reminders,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SyncConfig:
        taskwarrior = data.get("taskwarrior", {})
        reminders = data.get("reminders", {})
        sync_settings = data.get("sync", {})
        logging_settings = data.get("logging", {})

        return cls(
            task_command=taskwarrior.get("command", "task"),
            taskwarrior_data_dir=taskwarrior.get("data_dir", "~/.task"),
            reminder_id_uda=taskwarrior.get("reminder_id_uda", "reminderID"),
            default_list_name=reminders.get("default_list_name"),
            sync_since=sync_settings.get("since"),
            missing_reminder_policy=sync_settings.get("missing_reminder_policy", "recreate"),
            import_completed_reminders=bool(
                sync_settings.get("import_completed_reminders", False)
            ),
            log_level=logging_settings.get("level", "INFO"),
            log_file=logging_settings.get("file"),
        )

    @classmethod
    def load_from_file(cls, config_path: str) -> SyncConfig:
        data = safe_read_json(_normalize_path(config_path))
        if not isinstance(data, dict):
            return cls()
        return cls.from_dict(data)

    def save_to_file(self, config_path: str) -> None:
        if not safe_write_json(_normalize_path(config_path), self.to_dict()):
            raise ConfigurationError(f"Could not write configuration to {config_path}")
