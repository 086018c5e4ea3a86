"""Sync engine reconciling Taskwarrior tasks with Apple Reminders."""

from datetime import datetime, tzinfo
from typing import Any, Callable, Dict, List, Optional, Set
import logging
import threading

from ..core.exceptions import (
    PermissionDeniedError,
    StoreUnavailableError,
    SyncError,
    WriteConflictError,
)
from ..core.models import EPOCH, ReminderData, StoreResult, Task
from .resolver import RecordSynchronizer
from .transcoders import apply_task_to_reminder, reminder_to_task


DIRECTIONS = ("both", "to-reminders", "from-reminders")

SUMMARY_KEYS = (
    "processed",
    "rem_created",
    "rem_updated",
    "rem_deleted",
    "task_created",
    "task_updated",
    "task_deleted",
    "unchanged",
    "conflicts_retried",
    "skipped",
    "failed",
)


def new_summary() -> Dict[str, Any]:
    summary: Dict[str, Any] = {key: 0 for key in SUMMARY_KEYS}
    summary["errors"] = []
    return summary


class SyncEngine:
    """Runs reconciliation passes between a task store and a reminder store.

    Both stores are injected. ``sync_from_taskwarrior`` walks tasks changed
    since the watermark and brings their reminders up to date;
    ``sync_from_reminders`` does the reverse. The two passes may run on
    different threads at the same time.
    """

    def __init__(
        self,
        task_store,
        reminder_store,
        synchronizer: Optional[RecordSynchronizer] = None,
        watermark: datetime = EPOCH,
        default_project: Optional[str] = None,
        missing_reminder_policy: str = "recreate",
        import_completed_reminders: bool = False,
        tz: Optional[tzinfo] = None,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.task_store = task_store
        self.reminder_store = reminder_store
        self.logger = logger or logging.getLogger(__name__)
        self.synchronizer = synchronizer or RecordSynchronizer(
            default_project=default_project, tz=tz, logger=self.logger
        )
        self.watermark = watermark
        self.default_project = default_project
        self.missing_reminder_policy = missing_reminder_policy
        self.import_completed_reminders = import_completed_reminders
        self.tz = tz
        self.dry_run = dry_run

        # Reminders created by the task pass whose identifier is not yet
        # stored on the task; the reminder pass must not import them.
        self._claimed_ids: Set[str] = set()
        self._claim_lock = threading.Lock()

    def sync(self, direction: str = "both") -> Dict[str, Dict[str, Any]]:
        """Run the passes for ``direction`` and return their summaries by name."""
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown sync direction '{direction}'")

        results = {}
        if direction in ("both", "to-reminders"):
            results["to_reminders"] = self.sync_from_taskwarrior()
        if direction in ("both", "from-reminders"):
            results["from_reminders"] = self.sync_from_reminders()
        return results

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------
    def sync_from_taskwarrior(self) -> Dict[str, Any]:
        """Push every task changed since the watermark to its reminder."""
        self.logger.info(
            f"Starting Taskwarrior -> Reminders pass (since={self.watermark.isoformat()}, dry_run={self.dry_run})"
        )
        summary = new_summary()
        tasks = self.task_store.list_tasks(self.watermark)

        for task in tasks:
            summary["processed"] += 1
            state: Dict[str, Any] = {"created_id": None, "linked": False}

            def attempt(first: bool, task=task, state=state):
                current = task if first else self.task_store.load_task(task.uuid)
                self._push_task(current, state, summary)

            try:
                self._run_item(f"task '{task.title}' ({task.uuid})", attempt, summary)
            finally:
                self._finish_created(state)

        self._log_summary("Taskwarrior -> Reminders", summary)
        return summary

    def sync_from_reminders(self) -> Dict[str, Any]:
        """Pull every reminder changed since the watermark into Taskwarrior."""
        self.logger.info(
            f"Starting Reminders -> Taskwarrior pass (since={self.watermark.isoformat()}, dry_run={self.dry_run})"
        )
        summary = new_summary()
        identifiers = self.reminder_store.list_changed(self.watermark)

        for identifier in identifiers:
            summary["processed"] += 1
            if self._is_claimed(identifier):
                self.logger.debug(f"Reminder {identifier} is being linked by the task pass; skipping")
                summary["unchanged"] += 1
                continue

            def attempt(first: bool, identifier=identifier):
                self._pull_reminder(identifier, summary)

            self._run_item(f"reminder {identifier}", attempt, summary)

        self._log_summary("Reminders -> Taskwarrior", summary)
        return summary

    def _run_item(
        self,
        label: str,
        attempt: Callable[[bool], None],
        summary: Dict[str, Any],
    ) -> None:
        """Resolve one item, retrying once on a write conflict.

        Store outages and permission loss abort the pass; any other failure
        is recorded and the pass moves on to the next item.
        """
        try:
            try:
                attempt(True)
            except WriteConflictError as e:
                summary["conflicts_retried"] += 1
                self.logger.info(f"Write conflict on {label}; reloading and retrying: {e}")
                try:
                    attempt(False)
                except WriteConflictError as e:
                    summary["skipped"] += 1
                    summary["errors"].append(f"{label}: skipped after a second write conflict: {e}")
                    self.logger.warning(f"Skipping {label} after a second write conflict: {e}")
        except (StoreUnavailableError, PermissionDeniedError):
            raise
        except Exception as e:
            summary["failed"] += 1
            summary["errors"].append(f"{label}: {e}")
            self.logger.error(f"Failed to sync {label}: {e}")

    # ------------------------------------------------------------------
    # Taskwarrior -> Reminders
    # ------------------------------------------------------------------
    def _push_task(self, task: Task, state: Dict[str, Any], summary: Dict[str, Any]) -> None:
        external_id = state["created_id"] or task.external_id

        if task.is_deleted():
            reminder = self.reminder_store.fetch(external_id) if external_id else None
            if reminder is None:
                summary["unchanged"] += 1
                return
            self._remove_reminder(reminder, summary)
            return

        reminder = self.reminder_store.fetch(external_id) if external_id else None
        if reminder is None and external_id and external_id != state["created_id"]:
            if self.missing_reminder_policy == "delete_task":
                self.logger.info(
                    f"Reminder {external_id} for task '{task.title}' is gone; deleting the task"
                )
                if not self.dry_run:
                    self._check(self.task_store.delete_task(task))
                summary["task_deleted"] += 1
                return
            self.logger.info(f"Reminder {external_id} for task '{task.title}' is gone; recreating it")

        if reminder is None:
            reminder = self._create_reminder(external_id)
            state["created_id"] = reminder.identifier
            summary["rem_created"] += 1

        fresh = reminder.identifier == state["created_id"]
        if reminder.identifier and task.external_id != reminder.identifier:
            # Link before writing content so a failed write is retried on
            # this reminder next pass instead of creating another one
            task = self._link_task(task, reminder.identifier)
            state["linked"] = True

        counterpart = reminder_to_task(reminder, self.tz)
        if fresh:
            # A blank reminder made for this task must never win
            counterpart = counterpart.copy(last_modified=EPOCH)

        result = self.synchronizer.synchronize(updates_from=task, to_older=counterpart)

        if result.task.is_deleted():
            self._remove_reminder(reminder, summary)
            return

        if result.made_changes or fresh:
            resolved = result.task
            updated = apply_task_to_reminder(resolved, reminder, self.tz)
            updated.calendar_name = resolved.project or self.default_project
            self.logger.debug(f"Writing task '{task.title}' to reminder {reminder.identifier or '(new)'}")
            if not self.dry_run:
                self._check(self.reminder_store.save(updated))
            if not fresh:
                summary["rem_updated"] += 1
        else:
            summary["unchanged"] += 1

    def _create_reminder(self, external_id: Optional[str]) -> ReminderData:
        if self.dry_run:
            return ReminderData(identifier="", calendar_name=self.default_project)
        reminder = self.reminder_store.fetch_or_create(external_id)
        with self._claim_lock:
            self._claimed_ids.add(reminder.identifier)
        return reminder

    def _link_task(self, task: Task, identifier: str) -> Task:
        """Store a reminder identifier on its task and return the linked task."""
        linked = task.copy(external_id=identifier)
        if not self.dry_run:
            self._check(self.task_store.save_task(linked, expected_modified=task.last_modified))
        self.logger.debug(f"Linked task '{task.title}' to reminder {identifier}")
        return linked

    def _finish_created(self, state: Dict[str, Any]) -> None:
        """Release the claim on a reminder created for a task.

        A reminder that never got linked to its task would be orphaned, and
        the next pass would create another, so it is removed.
        """
        identifier = state["created_id"]
        if not identifier:
            return
        try:
            if not state["linked"]:
                self.logger.info(f"Removing unlinked reminder {identifier}")
                result = self.reminder_store.remove(ReminderData(identifier=identifier))
                if not result.ok:
                    self.logger.warning(f"Could not remove unlinked reminder {identifier}: {result.error}")
        finally:
            with self._claim_lock:
                self._claimed_ids.discard(identifier)

    def _remove_reminder(self, reminder: ReminderData, summary: Dict[str, Any]) -> None:
        self.logger.info(f"Removing reminder '{reminder.title}' ({reminder.identifier})")
        if not self.dry_run:
            self._check(self.reminder_store.remove(reminder))
        summary["rem_deleted"] += 1

    # ------------------------------------------------------------------
    # Reminders -> Taskwarrior
    # ------------------------------------------------------------------
    def _pull_reminder(self, identifier: str, summary: Dict[str, Any]) -> None:
        reminder = self.reminder_store.fetch(identifier)
        if reminder is None:
            self.logger.debug(f"Reminder {identifier} disappeared before it could be read")
            summary["unchanged"] += 1
            return
        if not reminder.title.strip():
            self.logger.debug(f"Reminder {identifier} has no title; ignoring")
            summary["unchanged"] += 1
            return

        reminder_task = reminder_to_task(reminder, self.tz)
        task = self.task_store.find_by_external_id(identifier)

        if task is None:
            if reminder.completed and not self.import_completed_reminders:
                self.logger.debug(f"Not importing completed reminder '{reminder.title}'")
                summary["unchanged"] += 1
                return
            created = reminder_task.copy(project=self._task_project(reminder_task.project, None))
            self.logger.info(f"Creating task for reminder '{reminder.title}' ({identifier})")
            if not self.dry_run:
                self._check(self.task_store.save_task(created))
            summary["task_created"] += 1
            return

        result = self.synchronizer.synchronize(updates_from=reminder_task, to_older=task)

        if result.task.is_deleted():
            self._remove_reminder(reminder, summary)
            return

        if not result.made_changes:
            summary["unchanged"] += 1
            return

        resolved = result.task.copy(
            uuid=task.uuid,
            project=self._task_project(result.task.project, task.project),
        )
        self.logger.debug(f"Writing reminder {identifier} to task {task.uuid}")
        if not self.dry_run:
            self._check(self.task_store.save_task(resolved, expected_modified=task.last_modified))
        summary["task_updated"] += 1

    def _task_project(self, project: Optional[str], current: Optional[str]) -> Optional[str]:
        """Keep "no project" on tasks filed in the default reminders list."""
        if project is not None and project == self.default_project and current is None:
            return None
        return project

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _is_claimed(self, identifier: str) -> bool:
        with self._claim_lock:
            return identifier in self._claimed_ids

    @staticmethod
    def _check(result: StoreResult) -> StoreResult:
        if not result.ok:
            raise result.error or SyncError("store write failed")
        return result

    def _log_summary(self, name: str, summary: Dict[str, Any]) -> None:
        counts = ", ".join(f"{key}={summary[key]}" for key in SUMMARY_KEYS if summary[key])
        self.logger.info(f"{name} pass finished: {counts or 'nothing to do'}")
        for error in summary["errors"]:
            self.logger.debug(f"  {error}")


def summarize(results: Dict[str, Dict[str, Any]]) -> List[str]:
    """Human-readable lines for the summaries returned by ``SyncEngine.sync``."""
    lines = []
    for name, summary in results.items():
        title = name.replace("_", " ")
        counts = ", ".join(f"{key}={summary[key]}" for key in SUMMARY_KEYS)
        lines.append(f"{title}: {counts}")
        for error in summary["errors"]:
            lines.append(f"  ! {error}")
    return lines
