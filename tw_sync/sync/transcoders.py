"""Field transcoding between the task vocabulary and the reminder vocabulary.

Every function here is pure. Each reverse mapping is the exact inverse of its
forward mapping on the values the forward mapping can produce, except where a
docstring says otherwise.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional
import logging
import warnings

from ..core.exceptions import TranscodeLoss
from ..core.models import (
    EPOCH, Alarm, Annotation, DueComponents, Priority, ReminderData, Task, TaskStatus
)


NOTE_SEPARATOR = "\n\n"
DISPLAY_ALARM = "display"

# Bumped-to hour for due dates that land exactly on local midnight
MORNING_HOUR = 6

# EKReminderPriority raw values
REMINDER_PRIORITY_NONE = 0
REMINDER_PRIORITY_HIGH = 1
REMINDER_PRIORITY_MEDIUM = 5
REMINDER_PRIORITY_LOW = 9

_PRIORITY_TO_REMINDER = {
    Priority.NONE: REMINDER_PRIORITY_NONE,
    Priority.LOW: REMINDER_PRIORITY_LOW,
    Priority.MEDIUM: REMINDER_PRIORITY_MEDIUM,
    Priority.HIGH: REMINDER_PRIORITY_HIGH,
}
_REMINDER_TO_PRIORITY = {value: key for key, value in _PRIORITY_TO_REMINDER.items()}

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Status
# ----------------------------------------------------------------------

def status_to_completed_flag(status: TaskStatus) -> bool:
    return status == TaskStatus.COMPLETED


def completed_flag_to_status(completed: bool) -> TaskStatus:
    """Map a reminder's completed flag back to a task status.

    Not invertible: ``pending`` and ``unknown`` both become ``False`` on the
    way out, so an incomplete reminder always reads back as ``unknown``.
    """
    if completed:
        return TaskStatus.COMPLETED
    logger.debug("Incomplete reminder read back as unknown status")
    return TaskStatus.UNKNOWN


# ----------------------------------------------------------------------
# Priority
# ----------------------------------------------------------------------

def priority_to_reminder(priority: Priority) -> int:
    return _PRIORITY_TO_REMINDER.get(priority, REMINDER_PRIORITY_NONE)


def reminder_to_priority(value: Optional[int]) -> Priority:
    """Unrecognized values (EventKit allows 0-9) fall back to ``none``."""
    try:
        return _REMINDER_TO_PRIORITY.get(int(value), Priority.NONE)
    except (TypeError, ValueError):
        return Priority.NONE


# ----------------------------------------------------------------------
# Notes
# ----------------------------------------------------------------------

def notes_to_text(notes: List[Annotation]) -> str:
    """Join annotations into one text blob separated by blank lines.

    An annotation containing a blank line (or an empty one) will not survive
    the reverse split; this is reported as a ``TranscodeLoss`` warning and
    the text is written anyway.
    """
    if not notes:
        return ""

    for note in notes:
        if NOTE_SEPARATOR in note.text or not note.text:
            warnings.warn(
                f"Annotation {note.text[:40]!r} will not split back into the same note",
                TranscodeLoss,
                stacklevel=2,
            )

    return NOTE_SEPARATOR.join(note.text for note in notes)


def text_to_notes(text: Optional[str]) -> List[Annotation]:
    if not text:
        return []
    return [Annotation(text=chunk) for chunk in text.split(NOTE_SEPARATOR)]


# ----------------------------------------------------------------------
# Due dates
# ----------------------------------------------------------------------

def _to_local(value: datetime, tz: Optional[tzinfo]) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz) if tz is not None else value.astimezone()


def bump_midnight(due: Optional[datetime], tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Move a due date at exactly local midnight to 06:00 the same day.

    Reminders treats a bare midnight as "no time" and would otherwise notify
    at 00:00.
    """
    if due is None:
        return None
    local = _to_local(due, tz)
    if local.hour == 0 and local.minute == 0 and local.second == 0:
        local = local.replace(hour=MORNING_HOUR, microsecond=0)
    return local


def due_to_components(due: Optional[datetime], tz: Optional[tzinfo] = None) -> Optional[DueComponents]:
    """Decompose a due date into local calendar components, bumping midnight."""
    local = bump_midnight(due, tz)
    if local is None:
        return None
    return DueComponents(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        second=local.second,
    )


def components_to_due(
    components: Optional[DueComponents],
    alarms: Optional[List[Alarm]] = None,
    tz: Optional[tzinfo] = None,
) -> Optional[datetime]:
    """Rebuild a due date, adding the first display alarm's offset if any."""
    if components is None:
        return None

    naive = datetime(
        components.year,
        components.month,
        components.day,
        components.hour or 0,
        components.minute or 0,
        components.second or 0,
    )
    # astimezone() on a naive datetime interprets it as system local time
    base = naive.replace(tzinfo=tz) if tz is not None else naive.astimezone()

    for alarm in alarms or []:
        if alarm.alarm_type == DISPLAY_ALARM:
            base = base + timedelta(seconds=alarm.relative_offset)
            break

    return base.astimezone(timezone.utc)


def with_due_alarm(alarms: List[Alarm]) -> List[Alarm]:
    """Keep non-display alarms and attach a single zero-offset display alarm."""
    kept = [alarm for alarm in alarms if alarm.alarm_type != DISPLAY_ALARM]
    kept.append(Alarm(relative_offset=0.0, alarm_type=DISPLAY_ALARM))
    return kept


# ----------------------------------------------------------------------
# Whole records
# ----------------------------------------------------------------------

def reminder_to_task(reminder: ReminderData, tz: Optional[tzinfo] = None) -> Task:
    """Read a reminder snapshot as a Task. ``uuid`` is left empty."""
    return Task(
        title=reminder.title or "",
        status=completed_flag_to_status(reminder.completed),
        priority=reminder_to_priority(reminder.priority),
        project=reminder.calendar_name,
        external_id=reminder.identifier,
        last_modified=reminder.modified_at or EPOCH,
        due=components_to_due(reminder.due_components, reminder.alarms, tz),
        notes=text_to_notes(reminder.notes),
    )


def apply_task_to_reminder(
    task: Task,
    reminder: ReminderData,
    tz: Optional[tzinfo] = None,
) -> ReminderData:
    """Return a copy of ``reminder`` carrying the task's fields.

    A task without a due date clears the reminder's date components and
    leaves its alarms alone.
    """
    if task.due is not None:
        due_components = due_to_components(task.due, tz)
        alarms = with_due_alarm(reminder.alarms)
    else:
        due_components = None
        alarms = list(reminder.alarms)

    return replace(
        reminder,
        title=task.title,
        completed=status_to_completed_flag(task.status),
        priority=priority_to_reminder(task.priority),
        calendar_name=task.project,
        due_components=due_components,
        alarms=alarms,
        notes=notes_to_text(task.notes),
    )
