"""Reminder store used by the sync engine."""

from datetime import datetime
from typing import List, Optional
import logging

from ..core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    RemindersError,
    WriteConflictError,
)
from ..core.models import ReminderData, ReminderList, StoreResult
from ..utils.date import ensure_aware
from .gateway import RemindersGateway


class RemindersTaskManager:
    """Store operations on reminders, returning results instead of raising."""

    def __init__(
        self,
        gateway: Optional[RemindersGateway] = None,
        default_list_name: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.gateway = gateway or RemindersGateway(logger=logger)
        self.default_list_name = default_list_name
        self.logger = logger or logging.getLogger(__name__)

    def list_changed(self, modified_since: datetime) -> List[str]:
        """Identifiers of reminders modified after the watermark."""
        # Cached objects may be stale after an external change
        self.gateway.reset()
        changed = []
        for rem in self.gateway.fetch_all():
            if rem.modified_at is not None and ensure_aware(rem.modified_at) > modified_since:
                changed.append(rem.identifier)
        self.logger.debug(f"Reminders reports {len(changed)} reminder(s) modified since {modified_since}")
        return changed

    def fetch(self, external_id: Optional[str]) -> Optional[ReminderData]:
        """Return the reminder with this identifier, or None if it does not exist."""
        if not external_id:
            return None
        return self.gateway.get_reminder(external_id)

    def fetch_or_create(self, external_id: Optional[str]) -> ReminderData:
        """Return the reminder, creating a blank one when the id is missing or unknown."""
        existing = self.fetch(external_id)
        if existing is not None:
            return existing
        if external_id:
            self.logger.info(f"Reminder {external_id} not found; creating a new one")
        created = self.gateway.create_reminder()
        if self.default_list_name and created.calendar_name != self.default_list_name:
            self.ensure_category(self.default_list_name)
            created.calendar_name = self.default_list_name
        return created

    def save(self, reminder: ReminderData) -> StoreResult:
        try:
            self.gateway.update_reminder(reminder)
            return StoreResult.success(reminder.identifier)
        except PermissionDeniedError:
            raise
        except (WriteConflictError, NotFoundError, RemindersError) as e:
            self.logger.warning(f"Failed to save reminder '{reminder.title}': {e}")
            return StoreResult.failure(e)

    def remove(self, reminder: ReminderData) -> StoreResult:
        try:
            self.gateway.remove_reminder(reminder)
            return StoreResult.success(reminder.identifier)
        except PermissionDeniedError:
            raise
        except RemindersError as e:
            self.logger.warning(f"Failed to remove reminder '{reminder.title}': {e}")
            return StoreResult.failure(e)

    def categories(self) -> List[ReminderList]:
        return self.gateway.get_lists()

    def ensure_category(self, name: str) -> str:
        """Return the identifier of the list titled ``name``, creating it if absent."""
        return self.gateway.ensure_list(name).identifier

    def default_category_name(self) -> str:
        if self.default_list_name:
            return self.default_list_name
        return self.gateway.default_list().name
