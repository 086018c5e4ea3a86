"""Apple Reminders gateway using EventKit."""

import functools
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional
import logging

from tw_sync.core.exceptions import (
    RemindersError,
    AuthorizationError,
    EventKitImportError,
    NotFoundError,
    StoreUnavailableError,
    WriteConflictError,
)
from tw_sync.core.models import Alarm, DueComponents, ReminderData, ReminderList


# NSDateComponentUndefined (NSIntegerMax)
_UNDEFINED_COMPONENT = 0x7FFFFFFFFFFFFFFF

# EKAlarmType raw values
_ALARM_TYPES = {0: "display", 1: "audio", 2: "procedure", 3: "email"}

# lastModifiedDate granularity differs between EventKit backends
_MODIFIED_TOLERANCE_SECONDS = 1.0

FETCH_TIMEOUT_SECONDS = 30


def _nsdate_to_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value.timeIntervalSince1970(), tz=timezone.utc)


def _component(value) -> Optional[int]:
    if value is None:
        return None
    value = int(value)
    if value == _UNDEFINED_COMPONENT:
        return None
    return value


def _serialized(method):
    """Hold the gateway lock for the whole call.

    Both sync passes share one EKEventStore; a reset or fetch must not land
    between another thread's edit of a reminder and its save.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class RemindersGateway:
    """Gateway for Apple Reminders via EventKit.

    Every call blocks until EventKit answers; completion handlers are bridged
    with a ``threading.Event`` while the current run loop is spun.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._store = None
        self._authorized = False
        self._observers: List[Any] = []
        self._lock = threading.RLock()

    def _ensure_eventkit(self):
        """Import EventKit and Foundation with specific error handling."""
        try:
            import EventKit
            import Foundation
        except ImportError as e:
            self.logger.error(f"EventKit import failed: {e}")
            raise EventKitImportError(
                "EventKit not available. Please install PyObjC framework:\n"
                "  pip install pyobjc-framework-EventKit\n"
                f"Import error details: {e}"
            ) from e

        self._EventKit = EventKit
        self._Foundation = Foundation

    def _get_store(self):
        """Get or create the EventKit store, requesting access if needed."""
        if self._store is not None and self._authorized:
            return self._store

        self._ensure_eventkit()
        EventKit = self._EventKit

        if self._store is None:
            try:
                self._store = EventKit.EKEventStore.alloc().init()
            except Exception as e:
                raise StoreUnavailableError(f"Failed to initialize EventKit store: {e}") from e

        status = int(EventKit.EKEventStore.authorizationStatusForEntityType_(
            EventKit.EKEntityTypeReminder
        ))
        # 3 is "authorized" before macOS 14 and "full access" after
        if status == 3:
            self._authorized = True
            return self._store

        if status == 1:
            raise AuthorizationError(
                "Access to Reminders is restricted by system policy.\n"
                "This may be due to parental controls or device management profiles."
            )
        if status == 2:
            raise AuthorizationError(
                "Please give tw-sync Reminders permission:\n"
                "  1. Open System Settings > Privacy & Security > Reminders\n"
                "  2. Enable access for your terminal (or the tw-sync agent)\n"
                "  3. Restart tw-sync"
            )

        self.logger.info("Requesting EventKit authorization for reminders...")
        done = threading.Event()
        result = {'granted': False, 'error': None}

        def completion(granted, error):
            result['granted'] = granted
            result['error'] = error
            done.set()

        if hasattr(self._store, "requestFullAccessToRemindersWithCompletion_"):
            self._store.requestFullAccessToRemindersWithCompletion_(completion)
        else:
            self._store.requestAccessToEntityType_completion_(
                EventKit.EKEntityTypeReminder, completion
            )
        self._wait(done, "Authorization request")

        if not result['granted']:
            detail = f": {result['error']}" if result['error'] else ""
            raise AuthorizationError(
                f"User denied access to Reminders{detail}\n"
                "Grant access in System Settings > Privacy & Security > Reminders and restart tw-sync."
            )

        self._authorized = True
        self.logger.info("EventKit authorization granted")
        return self._store

    def _wait(self, done: threading.Event, what: str) -> None:
        """Spin the current run loop until ``done`` is set."""
        deadline = time.monotonic() + FETCH_TIMEOUT_SECONDS
        Foundation = self._Foundation
        while not done.is_set():
            if time.monotonic() > deadline:
                raise StoreUnavailableError(
                    f"{what} timed out after {FETCH_TIMEOUT_SECONDS} seconds"
                )
            Foundation.NSRunLoop.currentRunLoop().runUntilDate_(
                Foundation.NSDate.dateWithTimeIntervalSinceNow_(0.1)
            )

    @_serialized
    def ensure_authorized(self) -> None:
        """Raise AuthorizationError unless Reminders access is granted."""
        self._get_store()

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------
    def _calendars(self) -> List[Any]:
        store = self._get_store()
        return list(store.calendarsForEntityType_(self._EventKit.EKEntityTypeReminder) or [])

    def _default_calendar(self):
        calendar = self._get_store().defaultCalendarForNewReminders()
        if calendar is None:
            raise RemindersError("No default Reminders list is configured")
        return calendar

    @_serialized
    def get_lists(self) -> List[ReminderList]:
        """Get all reminder lists."""
        return [
            ReminderList(name=str(cal.title() or ''), identifier=str(cal.calendarIdentifier()))
            for cal in self._calendars()
        ]

    @_serialized
    def default_list(self) -> ReminderList:
        calendar = self._default_calendar()
        return ReminderList(name=str(calendar.title() or ''), identifier=str(calendar.calendarIdentifier()))

    def _calendar_named(self, name: Optional[str]):
        """Find a list by exact title, creating it in the default source if absent."""
        if not name:
            return self._default_calendar()

        for calendar in self._calendars():
            if str(calendar.title()) == name:
                return calendar

        store = self._get_store()
        calendar = self._EventKit.EKCalendar.calendarForEntityType_eventStore_(
            self._EventKit.EKEntityTypeReminder, store
        )
        calendar.setTitle_(name)
        calendar.setSource_(self._default_calendar().source())
        success, error = store.saveCalendar_commit_error_(calendar, True, None)
        if not success:
            raise RemindersError(f"Failed to create Reminders list '{name}': {error}")
        self.logger.info(f"Created Reminders list '{name}'")
        return calendar

    @_serialized
    def ensure_list(self, name: str) -> ReminderList:
        calendar = self._calendar_named(name)
        return ReminderList(name=str(calendar.title()), identifier=str(calendar.calendarIdentifier()))

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------
    @_serialized
    def reset(self) -> None:
        """Drop cached objects so the next fetch sees the latest state."""
        self._get_store().reset()

    @_serialized
    def fetch_all(self) -> List[ReminderData]:
        """Fetch every reminder in every list."""
        store = self._get_store()
        predicate = store.predicateForRemindersInCalendars_(None)

        reminders = []
        done = threading.Event()

        def completion(fetched):
            if fetched:
                reminders.extend(list(fetched))
            done.set()

        store.fetchRemindersMatchingPredicate_completion_(predicate, completion)
        self._wait(done, "Reminder fetch")

        return [self.to_data(rem) for rem in reminders]

    def _reminder(self, identifier: Optional[str]):
        if not identifier:
            return None
        item = self._get_store().calendarItemWithIdentifier_(identifier)
        if item is None or not isinstance(item, self._EventKit.EKReminder):
            return None
        return item

    @_serialized
    def get_reminder(self, identifier: Optional[str]) -> Optional[ReminderData]:
        rem = self._reminder(identifier)
        return self.to_data(rem) if rem is not None else None

    @_serialized
    def create_reminder(self) -> ReminderData:
        """Create and commit a blank reminder in the default list."""
        store = self._get_store()
        rem = self._EventKit.EKReminder.reminderWithEventStore_(store)
        rem.setCalendar_(self._default_calendar())
        success, error = store.saveReminder_commit_error_(rem, True, None)
        if not success:
            raise RemindersError(f"Failed to create reminder: {error}")
        data = self.to_data(rem)
        self.logger.debug(f"Created reminder {data.identifier}")
        return data

    @_serialized
    def update_reminder(self, data: ReminderData) -> None:
        """
        Write a snapshot back to its reminder.

        Raises:
            NotFoundError: the reminder no longer exists
            WriteConflictError: the reminder changed after the snapshot was taken
            RemindersError: EventKit refused the save
        """
        store = self._get_store()
        rem = self._reminder(data.identifier)
        if rem is None:
            raise NotFoundError(f"Reminder {data.identifier} not found")

        current = _nsdate_to_datetime(rem.lastModifiedDate())
        if data.modified_at and current:
            drift = (current - data.modified_at).total_seconds()
            if drift > _MODIFIED_TOLERANCE_SECONDS:
                raise WriteConflictError(
                    f"Reminder {data.identifier} changed at {current} after it was read at {data.modified_at}"
                )

        self._apply(rem, data)
        success, error = store.saveReminder_commit_error_(rem, True, None)
        if not success:
            raise RemindersError(f"Failed to save reminder '{data.title}': {error}")

    @_serialized
    def remove_reminder(self, data: ReminderData) -> None:
        store = self._get_store()
        rem = self._reminder(data.identifier)
        if rem is None:
            self.logger.debug(f"Reminder {data.identifier} already gone")
            return
        success, error = store.removeReminder_commit_error_(rem, True, None)
        if not success:
            raise RemindersError(f"Failed to remove reminder '{data.title}': {error}")

    # ------------------------------------------------------------------
    # Conversion between EKReminder and ReminderData
    # ------------------------------------------------------------------
    def to_data(self, rem) -> ReminderData:
        due_components = None
        comps = rem.dueDateComponents()
        if comps is not None:
            year, month, day = _component(comps.year()), _component(comps.month()), _component(comps.day())
            if year and month and day:
                due_components = DueComponents(
                    year=year,
                    month=month,
                    day=day,
                    hour=_component(comps.hour()),
                    minute=_component(comps.minute()),
                    second=_component(comps.second()),
                )

        alarms = [
            Alarm(
                relative_offset=float(alarm.relativeOffset()),
                alarm_type=_ALARM_TYPES.get(int(alarm.type()), "display"),
            )
            for alarm in (rem.alarms() or [])
        ]

        calendar = rem.calendar()
        return ReminderData(
            identifier=str(rem.calendarItemIdentifier()),
            title=str(rem.title() or ''),
            completed=bool(rem.isCompleted()),
            priority=int(rem.priority()),
            calendar_name=str(calendar.title()) if calendar is not None else None,
            due_components=due_components,
            alarms=alarms,
            notes=str(rem.notes() or ''),
            modified_at=_nsdate_to_datetime(rem.lastModifiedDate()),
        )

    def _apply(self, rem, data: ReminderData) -> None:
        Foundation = self._Foundation
        EventKit = self._EventKit

        rem.setTitle_(data.title)
        rem.setCompleted_(data.completed)
        rem.setPriority_(int(data.priority))
        rem.setCalendar_(self._calendar_named(data.calendar_name))
        rem.setNotes_(data.notes or None)

        if data.due_components is None:
            rem.setDueDateComponents_(None)
        else:
            due = data.due_components
            components = Foundation.NSDateComponents.alloc().init()
            components.setCalendar_(Foundation.NSCalendar.currentCalendar())
            components.setTimeZone_(Foundation.NSTimeZone.localTimeZone())
            components.setYear_(due.year)
            components.setMonth_(due.month)
            components.setDay_(due.day)
            if due.hour is not None:
                components.setHour_(due.hour)
                components.setMinute_(due.minute or 0)
                components.setSecond_(due.second or 0)
            rem.setDueDateComponents_(components)

        # Only display alarms are managed; others stay as the user set them
        for alarm in list(rem.alarms() or []):
            if _ALARM_TYPES.get(int(alarm.type())) == "display":
                rem.removeAlarm_(alarm)
        for alarm in data.alarms:
            if alarm.alarm_type == "display":
                rem.addAlarm_(EventKit.EKAlarm.alarmWithRelativeOffset_(alarm.relative_offset))

    # ------------------------------------------------------------------
    # Change notifications
    # ------------------------------------------------------------------
    @_serialized
    def add_change_observer(self, callback: Callable[[], None]) -> Any:
        """Call ``callback`` (with no arguments) on every store change."""
        store = self._get_store()
        center = self._Foundation.NSNotificationCenter.defaultCenter()

        def on_change(_notification):
            callback()

        token = center.addObserverForName_object_queue_usingBlock_(
            self._EventKit.EKEventStoreChangedNotification, store, None, on_change
        )
        self._observers.append(token)
        return token

    @_serialized
    def remove_change_observer(self, token: Any) -> None:
        center = self._Foundation.NSNotificationCenter.defaultCenter()
        center.removeObserver_(token)
        if token in self._observers:
            self._observers.remove(token)

    def run_loop_once(self, seconds: float = 1.0) -> None:
        """Run the main run loop briefly so notifications get delivered."""
        Foundation = self._Foundation
        Foundation.NSRunLoop.mainRunLoop().runUntilDate_(
            Foundation.NSDate.dateWithTimeIntervalSinceNow_(seconds)
        )
