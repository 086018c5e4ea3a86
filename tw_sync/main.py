#!/usr/bin/env python3
"""
tw-sync - Bidirectional sync between Taskwarrior and Apple Reminders.
"""

import argparse
import logging
import sys
import warnings

from tw_sync.core.config import load_config, get_default_config_path
from tw_sync.core.exceptions import ConfigurationError, PermissionDeniedError, TranscodeLoss
from tw_sync.sync.engine import DIRECTIONS
from tw_sync.utils.macos import set_process_name
from tw_sync.commands import SyncCommand, WatchCommand, ConfigCommand


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PERMISSION_DENIED = 77
EXIT_CONFIG_ERROR = 78
EXIT_INTERRUPTED = 130

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tw-sync",
        description="Bidirectional task sync between Taskwarrior and Apple Reminders",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tw-sync sync                    # Sync changes made since installation
  tw-sync sync --all              # Sync everything
  tw-sync sync --dry-run          # Show what would change
  tw-sync watch                   # Keep syncing until Ctrl-C
  tw-sync config --init           # Write a config file with defaults
        """
    )

    parser.add_argument(
        '--config',
        help=f'Path to configuration file (default: {get_default_config_path()})',
        default=None
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    sync_parser = subparsers.add_parser('sync', help='Run one sync pass')
    sync_parser.add_argument(
        '--all',
        action='store_true',
        dest='sync_all',
        help='Sync every item, not just those changed since installation'
    )
    sync_parser.add_argument(
        '--direction',
        choices=list(DIRECTIONS),
        default='both',
        help='Sync direction'
    )
    sync_parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be done without making changes'
    )

    watch_parser = subparsers.add_parser('watch', help='Sync continuously as either side changes')
    watch_parser.add_argument(
        '--all',
        action='store_true',
        dest='sync_all',
        help='Sync every item, not just those changed since installation'
    )

    config_parser = subparsers.add_parser('config', help='Show or initialize configuration')
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument(
        '--show',
        action='store_true',
        help='Print the effective configuration (default)'
    )
    config_group.add_argument(
        '--init',
        action='store_true',
        help='Write the configuration file'
    )

    return parser


def main(argv=None):
    """Main entry point for tw-sync."""
    set_process_name("tw-sync")

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO),
        format=LOG_FORMAT
    )
    logging.captureWarnings(True)
    warnings.simplefilter("always", TranscodeLoss)

    if args.verbose:
        print(f"Using config: {args.config or get_default_config_path()}")

    try:
        if args.command == 'sync':
            cmd = SyncCommand(config, verbose=args.verbose)
            success = cmd.run(
                direction=args.direction,
                dry_run=args.dry_run,
                sync_all=args.sync_all
            )

        elif args.command == 'watch':
            cmd = WatchCommand(config, verbose=args.verbose)
            success = cmd.run(sync_all=args.sync_all)

        elif args.command == 'config':
            cmd = ConfigCommand(config, config_path=args.config, verbose=args.verbose)
            success = cmd.run(show=args.show, init=args.init)

        else:
            print(f"Unknown command '{args.command}'.")
            return EXIT_FAILURE

        return EXIT_OK if success else EXIT_FAILURE

    except PermissionDeniedError as e:
        print(f"Permission denied: {e}", file=sys.stderr)
        return EXIT_PERMISSION_DENIED
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return EXIT_INTERRUPTED
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if not args.verbose:
            print("Re-run with --verbose for more detail.", file=sys.stderr)
        else:
            import traceback
            traceback.print_exc()
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
