"""
Tests for CLI entry point (tw_sync/main.py) and the commands it dispatches to.

Validates argument parsing, command dispatch, and exit codes.
"""

from unittest.mock import Mock, patch

import pytest

from tw_sync.commands.config import ConfigCommand
from tw_sync.commands.stores import build_engine
from tw_sync.commands.sync import SyncCommand
from tw_sync.core.config import load_config
from tw_sync.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    PermissionDeniedError,
)
from tw_sync.core.models import EPOCH, SyncConfig, Task
from tw_sync.main import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
    EXIT_PERMISSION_DENIED,
    main,
)


class TestMainCLI:
    """Test suite for main CLI entry point."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_FAILURE
        assert "usage" in capsys.readouterr().out

    def test_sync_command_dispatch(self):
        """'sync' dispatches to SyncCommand with defaults."""
        with patch('tw_sync.main.SyncCommand') as mock_sync:
            mock_sync.return_value.run.return_value = True
            with patch('tw_sync.main.load_config', return_value=SyncConfig()):
                result = main(['sync'])

        mock_sync.return_value.run.assert_called_once_with(
            direction='both', dry_run=False, sync_all=False
        )
        assert result == EXIT_OK

    def test_sync_flags(self):
        with patch('tw_sync.main.SyncCommand') as mock_sync:
            mock_sync.return_value.run.return_value = True
            with patch('tw_sync.main.load_config', return_value=SyncConfig()):
                main(['sync', '--all', '--dry-run', '--direction', 'from-reminders'])

        mock_sync.return_value.run.assert_called_once_with(
            direction='from-reminders', dry_run=True, sync_all=True
        )

    def test_invalid_direction_rejected(self):
        with pytest.raises(SystemExit):
            main(['sync', '--direction', 'sideways'])

    def test_watch_command_dispatch(self):
        with patch('tw_sync.main.WatchCommand') as mock_watch:
            mock_watch.return_value.run.return_value = True
            with patch('tw_sync.main.load_config', return_value=SyncConfig()):
                result = main(['watch', '--all'])

        mock_watch.return_value.run.assert_called_once_with(sync_all=True)
        assert result == EXIT_OK

    def test_failed_sync_exit_code(self):
        with patch('tw_sync.main.SyncCommand') as mock_sync:
            mock_sync.return_value.run.return_value = False
            with patch('tw_sync.main.load_config', return_value=SyncConfig()):
                assert main(['sync']) == EXIT_FAILURE

    @pytest.mark.parametrize("error,code", [
        (AuthorizationError("Please give tw-sync Reminders permission"), EXIT_PERMISSION_DENIED),
        (PermissionDeniedError("data dir not writable"), EXIT_PERMISSION_DENIED),
        (ConfigurationError("task binary missing"), EXIT_CONFIG_ERROR),
        (KeyboardInterrupt(), EXIT_INTERRUPTED),
        (RuntimeError("boom"), EXIT_FAILURE),
    ])
    def test_error_exit_codes(self, error, code, capsys):
        with patch('tw_sync.main.SyncCommand') as mock_sync:
            mock_sync.return_value.run.side_effect = error
            with patch('tw_sync.main.load_config', return_value=SyncConfig()):
                assert main(['sync']) == code

    def test_permission_message_is_actionable(self, capsys):
        with patch('tw_sync.main.SyncCommand') as mock_sync:
            mock_sync.return_value.run.side_effect = AuthorizationError(
                "Please give tw-sync Reminders permission"
            )
            with patch('tw_sync.main.load_config', return_value=SyncConfig()):
                main(['sync'])

        assert "Reminders permission" in capsys.readouterr().err

    def test_bad_config_exit_code(self):
        with patch('tw_sync.main.load_config', side_effect=ConfigurationError("bad policy")):
            assert main(['sync']) == EXIT_CONFIG_ERROR

    def test_config_init_writes_file(self, tw_sync_home, capsys):
        assert main(['config', '--init']) == EXIT_OK
        assert load_config() == SyncConfig()
        assert "Wrote configuration" in capsys.readouterr().out

    def test_config_show(self, tw_sync_home, capsys):
        assert main(['config']) == EXIT_OK
        assert '"missing_reminder_policy": "recreate"' in capsys.readouterr().out


class TestCommands:
    """Test suite for command classes with stores mocked."""

    def test_sync_command_prints_summary(self, task_store, reminder_store, clock, capsys):
        task_store.add(Task(title="Buy milk", uuid="u1", last_modified=clock()))
        config = SyncConfig(sync_since=EPOCH.isoformat())

        with patch('tw_sync.commands.sync.open_stores', return_value=(task_store, reminder_store)):
            assert SyncCommand(config).run(direction="to-reminders") is True

        out = capsys.readouterr().out
        assert "to reminders: processed=1, rem_created=1" in out

    def test_sync_command_reports_failures(self, task_store, reminder_store, clock, capsys):
        task_store.add(Task(title="Broken", uuid="u1", last_modified=clock()))
        reminder_store.fail_titles.add("Broken")
        config = SyncConfig(sync_since=EPOCH.isoformat())

        with patch('tw_sync.commands.sync.open_stores', return_value=(task_store, reminder_store)):
            assert SyncCommand(config).run() is False

        assert "1 item(s) were not synced" in capsys.readouterr().out

    def test_build_engine_uses_config(self, task_store, reminder_store):
        config = SyncConfig(
            default_list_name="Inbox",
            missing_reminder_policy="delete_task",
            import_completed_reminders=True,
        )
        reminder_store.default_list_name = "Inbox"

        engine = build_engine(config, task_store, reminder_store, sync_all=True)

        assert engine.watermark == EPOCH
        assert engine.default_project == "Inbox"
        assert engine.missing_reminder_policy == "delete_task"
        assert engine.import_completed_reminders is True
        assert "Inbox" in reminder_store.lists

    def test_config_command_show_is_default(self, capsys):
        assert ConfigCommand(SyncConfig()).run() is True
        assert '"taskwarrior"' in capsys.readouterr().out
