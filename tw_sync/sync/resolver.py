"""Whole-record conflict resolution for bidirectional sync."""

from datetime import tzinfo
from typing import Optional
import logging

from ..core.models import Task, SyncResult, TaskStatus
from ..utils.date import ensure_aware, truncate_seconds
from .transcoders import bump_midnight, status_to_completed_flag


class RecordSynchronizer:
    """Decides which of two representations of one logical item wins.

    Resolution is whole-record: the newer side is taken as-is, never merged
    field by field.
    """

    def __init__(
        self,
        default_project: Optional[str] = None,
        tz: Optional[tzinfo] = None,
        logger: Optional[logging.Logger] = None,
    ):
        # Reminders files tasks without a project in its default list, so
        # "no project" and the default list name mean the same thing.
        self.default_project = default_project
        self.tz = tz
        self.logger = logger or logging.getLogger(__name__)

    def synchronize(self, updates_from: Task, to_older: Task) -> SyncResult:
        """
        Resolve ``updates_from`` (the side that started the pass) against
        ``to_older`` (its counterpart in the other store).

        Returns:
            SyncResult whose ``made_changes`` says the counterpart must be
            rewritten to match ``task``.
        """
        newer = self._is_newer(updates_from, to_older)

        if newer:
            resolved = updates_from.copy(
                external_id=updates_from.external_id or to_older.external_id,
                uuid=updates_from.uuid or to_older.uuid,
            )
        else:
            resolved = to_older

        if updates_from.is_deleted() or to_older.is_deleted():
            if not resolved.is_deleted():
                resolved = resolved.copy(status=TaskStatus.DELETED)
            self.logger.debug(f"Deletion wins for '{resolved.title}' (external_id={resolved.external_id})")
            return SyncResult(task=resolved, made_changes=True)

        if not newer:
            self.logger.debug(f"Counterpart of '{updates_from.title}' is newer or equal; keeping it")
            return SyncResult(task=resolved, made_changes=False)

        made_changes = not self.equivalent(updates_from, to_older)
        if made_changes:
            self.logger.debug(f"'{resolved.title}' is newer and differs; counterpart needs rewrite")
        return SyncResult(task=resolved, made_changes=made_changes)

    def equivalent(self, a: Task, b: Task) -> bool:
        """Compare two tasks on the fields that survive transcoding."""
        if (a.title or "").strip() != (b.title or "").strip():
            return False
        if status_to_completed_flag(a.status) != status_to_completed_flag(b.status):
            return False
        if a.priority != b.priority:
            return False
        if self._project(a) != self._project(b):
            return False
        if self._due(a) != self._due(b):
            return False
        return [note.text for note in a.notes] == [note.text for note in b.notes]

    def _is_newer(self, a: Task, b: Task) -> bool:
        return ensure_aware(a.last_modified) > ensure_aware(b.last_modified)

    def _project(self, task: Task) -> Optional[str]:
        return task.project or self.default_project

    def _due(self, task: Task):
        return truncate_seconds(bump_midnight(task.due, self.tz))


_default_synchronizer = RecordSynchronizer()


def synchronize(updates_from: Task, to_older: Task) -> SyncResult:
    """Resolve two records with default settings (no default list, local time)."""
    return _default_synchronizer.synchronize(updates_from, to_older)
