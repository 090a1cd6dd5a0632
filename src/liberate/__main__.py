#!/usr/bin/env python3
"""
Command-line interface for Liberate

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import sys
import argparse
import textwrap
import logging

from . import __version__
from .backup import RestorePolicy
from .errors import LiberateError, OperationCancelled
from .main import Liberator
from .utils.config import config
from .utils.log import configure_logging

logger = logging.getLogger(__name__)

RESTORE_POLICY_FLAGS = [
    ('--minimal', RestorePolicy.MINIMAL,
     'Remove SUSE packages, restore deleted files and the release package only'),
    ('--repos-only', RestorePolicy.REPOS_ONLY, 'Restore repository files only'),
    ('--release-only', RestorePolicy.RELEASE_ONLY, 'Reinstall the original release packages only'),
    ('--files-only', RestorePolicy.FILES_ONLY, 'Restore files deleted by the conversion only'),
    ('--config-only', RestorePolicy.CONFIG_ONLY, 'Restore package manager configuration only'),
    ('--select', RestorePolicy.SELECT, 'Inspect the backup and choose each restore step'),
]


def setup_argparse() -> argparse.ArgumentParser:
    """Set up command-line argument parser"""
    parser = argparse.ArgumentParser(
        prog="liberate",
        description="Liberate - convert Enterprise Linux to SUSE Liberty Linux, with backup and restore",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              liberate migrate                    # Back up and convert this host
              liberate --dry-run migrate          # Show what would be done
              liberate migrate --install-logos --report
              liberate backup --select            # Choose what to back up
              liberate list-backups               # Show available backups
              liberate restore                    # Full restore from the latest backup
              liberate restore 20240101_120000 --minimal
              liberate export-backup latest -o /tmp/backup.tar.gz
              liberate import-backup liberate-backup-20240101_120000.tar.gz
        """)
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--backup-dir', help=f'Backup directory (default: {config.get_backup_dir()})')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done without making changes')
    parser.add_argument('--interactive', action='store_true', help='Ask for confirmation at each step')
    parser.add_argument('-v', '--verbose', action='store_true', help='Show informational messages')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    migrate_parser = subparsers.add_parser('migrate', help='Back up this host and convert it')
    migrate_parser.add_argument('--reinstall-packages', action='store_true',
                                help='Reinstall all packages from SUSE repositories')
    migrate_parser.add_argument('--install-logos', action='store_true', help='Install SUSE logos packages')
    migrate_parser.add_argument('--no-backup', action='store_true', help='Skip the automatic backup')
    migrate_parser.add_argument('--force', action='store_true', help='Run even if already liberated')
    migrate_parser.add_argument('--report', action='store_true', help='Write a migration report')

    backup_parser = subparsers.add_parser('backup', help='Create a backup without converting')
    backup_parser.add_argument('--select', action='store_true', help='Choose which elements to back up')

    restore_parser = subparsers.add_parser('restore', help='Restore the original system from a backup')
    restore_parser.add_argument('name', nargs='?', default='latest', help='Backup id or "latest"')
    policy_group = restore_parser.add_mutually_exclusive_group()
    for flag, policy, help_text in RESTORE_POLICY_FLAGS:
        policy_group.add_argument(flag, dest='policy', action='store_const', const=policy, help=help_text)
    restore_parser.set_defaults(policy=RestorePolicy.FULL)

    rollback_parser = subparsers.add_parser(
        'rollback', help='Partial restore: repositories, configuration and marker removal')
    rollback_parser.add_argument('name', nargs='?', default='latest', help='Backup id or "latest"')

    subparsers.add_parser('list-backups', help='List available backups')

    export_parser = subparsers.add_parser('export-backup', help='Export a backup to a portable archive')
    export_parser.add_argument('name', help='Backup id or "latest"')
    export_parser.add_argument('-o', '--output', help='Archive file to write')

    import_parser = subparsers.add_parser('import-backup', help='Import a backup archive')
    import_parser.add_argument('archive', help='Archive created by export-backup')

    prune_parser = subparsers.add_parser('prune', help='Delete old backups')
    prune_parser.add_argument('--keep', type=int, help='Number of backups to keep (default: from configuration)')

    delete_parser = subparsers.add_parser('delete-backup', help='Delete one backup')
    delete_parser.add_argument('name', help='Backup id or "latest"')

    return parser


def handle_migrate(app: Liberator, args: argparse.Namespace) -> int:
    app.migrate(
        reinstall_packages=args.reinstall_packages,
        install_logos=args.install_logos,
        no_backup=args.no_backup,
        force=args.force,
        report=args.report,
    )
    return 0


def handle_backup(app: Liberator, args: argparse.Namespace) -> int:
    app.backup(select=args.select)
    return 0


def handle_restore(app: Liberator, args: argparse.Namespace) -> int:
    app.restore(args.name, args.policy)
    return 0


def handle_rollback(app: Liberator, args: argparse.Namespace) -> int:
    app.restore(args.name, RestorePolicy.ROLLBACK)
    return 0


def handle_list_backups(app: Liberator, args: argparse.Namespace) -> int:
    return 0 if app.list_backups() else 1


def handle_export_backup(app: Liberator, args: argparse.Namespace) -> int:
    app.export_backup(args.name, args.output)
    return 0


def handle_import_backup(app: Liberator, args: argparse.Namespace) -> int:
    app.import_backup(args.archive)
    return 0


def handle_prune(app: Liberator, args: argparse.Namespace) -> int:
    if args.keep is not None and args.keep < 1:
        print("Error: --keep must be at least 1")
        return 1
    removed = app.prune(args.keep)
    print(f"Removed {len(removed)} backup(s)")
    return 0


def handle_delete_backup(app: Liberator, args: argparse.Namespace) -> int:
    app.delete_backup(args.name)
    return 0


HANDLERS = {
    'migrate': handle_migrate,
    'backup': handle_backup,
    'restore': handle_restore,
    'rollback': handle_rollback,
    'list-backups': handle_list_backups,
    'export-backup': handle_export_backup,
    'import-backup': handle_import_backup,
    'prune': handle_prune,
    'delete-backup': handle_delete_backup,
}


def main(argv=None) -> int:
    """Main entry point for the application"""
    parser = setup_argparse()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging(config.get_log_file(), verbose=args.verbose)
    logger.debug(f"liberate {__version__} running {args.command}")

    try:
        app = Liberator(
            backup_dir=args.backup_dir,
            dry_run=args.dry_run,
            interactive=args.interactive,
            verbose=args.verbose,
        )
        return HANDLERS[args.command](app, args)
    except OperationCancelled as e:
        logger.info(str(e))
        return 0
    except LiberateError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
