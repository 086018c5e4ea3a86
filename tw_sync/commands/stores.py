"""Opening the two stores and wiring them into a SyncEngine."""

from typing import Optional, Tuple
import logging

from ..core.config import resolve_watermark
from ..core.models import SyncConfig
from ..reminders import RemindersGateway, RemindersTaskManager
from ..sync.engine import SyncEngine
from ..taskwarrior import TaskwarriorGateway, TaskwarriorTaskManager


def open_stores(
    config: SyncConfig,
    logger: Optional[logging.Logger] = None,
) -> Tuple[TaskwarriorTaskManager, RemindersTaskManager]:
    """
    Connect to Taskwarrior and Reminders, failing fast if either is unusable.

    Raises:
        ConfigurationError: Taskwarrior binary missing or broken
        PermissionDeniedError: no Reminders access, or unreadable task data
    """
    logger = logger or logging.getLogger(__name__)

    tw_gateway = TaskwarriorGateway(
        command=config.task_command,
        data_dir=config.taskwarrior_data_dir,
        uda_names=(config.reminder_id_uda,),
        logger=logger,
    )
    version = tw_gateway.verify()
    logger.info(f"Using Taskwarrior {version} with data in {config.taskwarrior_data_dir}")
    task_store = TaskwarriorTaskManager(tw_gateway, uda_name=config.reminder_id_uda, logger=logger)

    rem_gateway = RemindersGateway(logger=logger)
    rem_gateway.ensure_authorized()
    reminder_store = RemindersTaskManager(
        rem_gateway, default_list_name=config.default_list_name, logger=logger
    )

    return task_store, reminder_store


def build_engine(
    config: SyncConfig,
    task_store,
    reminder_store,
    sync_all: bool = False,
    dry_run: bool = False,
    logger: Optional[logging.Logger] = None,
) -> SyncEngine:
    """Create a SyncEngine for the configured stores and watermark."""
    if config.default_list_name and not dry_run:
        reminder_store.ensure_category(config.default_list_name)

    return SyncEngine(
        task_store,
        reminder_store,
        watermark=resolve_watermark(config, sync_all=sync_all),
        default_project=reminder_store.default_category_name(),
        missing_reminder_policy=config.missing_reminder_policy,
        import_completed_reminders=config.import_completed_reminders,
        dry_run=dry_run,
        logger=logger,
    )
