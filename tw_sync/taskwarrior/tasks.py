"""Task store backed by Taskwarrior."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging
import uuid as uuid_lib

from ..core.exceptions import NotFoundError, TaskwarriorError, WriteConflictError
from ..core.models import Annotation, Priority, StoreResult, Task, TaskStatus, EPOCH
from ..utils.date import format_taskwarrior_date, parse_taskwarrior_date
from .gateway import TaskwarriorGateway


_STATUS_FROM_TW = {
    "pending": TaskStatus.PENDING,
    "waiting": TaskStatus.PENDING,
    "completed": TaskStatus.COMPLETED,
    "deleted": TaskStatus.DELETED,
}

_PRIORITY_FROM_TW = {
    "H": Priority.HIGH,
    "M": Priority.MEDIUM,
    "L": Priority.LOW,
}
_PRIORITY_TO_TW = {value: key for key, value in _PRIORITY_FROM_TW.items()}

# Export keys computed by Taskwarrior that import must not receive back
_READ_ONLY_KEYS = ("id", "urgency", "modified")


class TaskwarriorTaskManager:
    """Reads and writes Tasks through ``task export`` / ``task import``."""

    def __init__(
        self,
        gateway: Optional[TaskwarriorGateway] = None,
        uda_name: str = "reminderID",
        logger: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway or TaskwarriorGateway(logger=logger)
        self.uda_name = uda_name
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------
    def from_export(self, data: Dict[str, Any]) -> Task:
        """Convert one ``task export`` object to a Task."""
        last_modified = (
            parse_taskwarrior_date(data.get("modified"))
            or parse_taskwarrior_date(data.get("entry"))
            or EPOCH
        )

        notes = []
        for annotation in data.get("annotations", []) or []:
            notes.append(
                Annotation(
                    text=annotation.get("description", ""),
                    entry=parse_taskwarrior_date(annotation.get("entry")),
                )
            )

        return Task(
            title=data.get("description", ""),
            status=_STATUS_FROM_TW.get(data.get("status", ""), TaskStatus.UNKNOWN),
            priority=_PRIORITY_FROM_TW.get(data.get("priority") or "", Priority.NONE),
            project=data.get("project") or None,
            external_id=data.get(self.uda_name) or None,
            uuid=data.get("uuid"),
            last_modified=last_modified,
            due=parse_taskwarrior_date(data.get("due")),
            notes=notes,
        )

    def to_import(self, task: Task, existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Build the import object for ``task``, layered over the existing export.

        ``task import`` replaces a task wholesale, so attributes the sync does
        not manage are carried over from ``existing`` and cleared fields are
        dropped rather than sent empty.
        """
        now = datetime.now(timezone.utc).replace(microsecond=0)
        data = dict(existing or {})
        for key in _READ_ONLY_KEYS:
            data.pop(key, None)

        data["uuid"] = task.uuid or data.get("uuid") or str(uuid_lib.uuid4())
        data["description"] = task.title
        data.setdefault("entry", format_taskwarrior_date(now))

        current_status = data.get("status")
        if task.status == TaskStatus.COMPLETED:
            data["status"] = "completed"
            data.setdefault("end", format_taskwarrior_date(now))
        elif task.status == TaskStatus.PENDING:
            data["status"] = "pending"
            data.pop("end", None)
        elif current_status not in ("pending", "waiting"):
            # unknown: the reminder is merely "not completed"
            data["status"] = "pending"
            data.pop("end", None)

        self._set_or_drop(data, "priority", _PRIORITY_TO_TW.get(task.priority))
        self._set_or_drop(data, "project", task.project)
        self._set_or_drop(data, self.uda_name, task.external_id)
        self._set_or_drop(data, "due", format_taskwarrior_date(task.due))

        existing_entries = {}
        for annotation in (existing or {}).get("annotations", []) or []:
            existing_entries.setdefault(annotation.get("description"), annotation.get("entry"))

        annotations = []
        for offset, note in enumerate(task.notes):
            entry = format_taskwarrior_date(note.entry) if note.entry else existing_entries.get(note.text)
            if not entry:
                # Taskwarrior keys annotations by entry second
                entry = format_taskwarrior_date(now + timedelta(seconds=offset))
            annotations.append({"entry": entry, "description": note.text})
        self._set_or_drop(data, "annotations", annotations)

        return data

    @staticmethod
    def _set_or_drop(data: Dict[str, Any], key: str, value: Any) -> None:
        if value:
            data[key] = value
        else:
            data.pop(key, None)

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------
    def _export_one(self, uuid: str) -> Dict[str, Any]:
        for data in self.gateway.export(uuid):
            if data.get("uuid") == uuid:
                return data
        raise NotFoundError(f"Task {uuid} not found in Taskwarrior")

    def list_tasks(self, modified_since: datetime) -> List[Task]:
        """List tasks (deleted ones included) modified after the watermark."""
        exported = self.gateway.export(
            f"modified.after:{format_taskwarrior_date(modified_since)}"
        )
        tasks = []
        for data in exported:
            # Recurrence templates are not synced; their instances are
            if data.get("status") == "recurring":
                continue
            tasks.append(self.from_export(data))
        self.logger.debug(f"Taskwarrior reports {len(tasks)} task(s) modified since {modified_since}")
        return tasks

    def load_task(self, uuid: str) -> Task:
        return self.from_export(self._export_one(uuid))

    def find_by_external_id(self, external_id: str) -> Optional[Task]:
        """Return the task paired with a reminder identifier, if any."""
        for data in self.gateway.export(f"{self.uda_name}:{external_id}"):
            # Attribute filters are not exact matches for string UDAs
            if data.get(self.uda_name) == external_id:
                return self.from_export(data)
        return None

    def save_task(self, task: Task, expected_modified: Optional[datetime] = None) -> StoreResult:
        """
        Create or update ``task``.

        Args:
            task: Task to write; a task without ``uuid`` is created
            expected_modified: The modification time the caller last saw. If
                Taskwarrior's copy is newer the write is refused with
                WriteConflictError.

        Returns:
            StoreResult carrying the task's uuid on success
        """
        try:
            existing = None
            if task.uuid:
                existing = self._export_one(task.uuid)
                current = self.from_export(existing).last_modified
                if expected_modified is not None and current > expected_modified:
                    return StoreResult.failure(
                        WriteConflictError(
                            f"Task {task.uuid} changed at {current} after it was read at {expected_modified}"
                        )
                    )

            data = self.to_import(task, existing)
            self.gateway.import_tasks([data])
            self.logger.debug(f"Saved task {data['uuid']} ('{task.title}')")
            return StoreResult.success(data["uuid"])
        except (TaskwarriorError, NotFoundError) as e:
            self.logger.warning(f"Failed to save task '{task.title}': {e}")
            return StoreResult.failure(e)

    def delete_task(self, task: Task) -> StoreResult:
        if not task.uuid:
            return StoreResult.failure(NotFoundError(f"Task '{task.title}' has no uuid"))
        try:
            current = self._export_one(task.uuid)
            if current.get("status") != "deleted":
                self.gateway.delete(task.uuid)
            return StoreResult.success(task.uuid)
        except (TaskwarriorError, NotFoundError) as e:
            self.logger.warning(f"Failed to delete task '{task.title}': {e}")
            return StoreResult.failure(e)
