#!/usr/bin/env python3
"""
Main application module for Liberate

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

import os
import logging
import dataclasses
from typing import List, Optional

from .backup import (
    SnapshotArchiver, SnapshotBuilder, SnapshotRef, SnapshotStore,
    RestoreOrchestrator, RestorePolicy, BuildReport, RestoreReport
)
from .backup.store import LATEST
from .errors import OperationCancelled, PrerequisiteError
from .migration import Migration, TARGET_NAMES
from .package_managers import PackageManagerFactory
from .package_managers.base import PackageManager
from .utils.config import Config, config
from .utils.context import AlwaysConfirm, Confirmer, PromptConfirmer, RunContext, SystemPaths
from .utils.distro import DistroInfo, get_distro_info
from .utils.log import log_success

logger = logging.getLogger(__name__)

# Package reinstall output, kept next to the main log
REINSTALL_LOG_NAMES = {
    'dnf': 'dnf_sll_migration.log',
    'yum': 'yum_sles_es_migration.log',
}


class Liberator:
    """Main application class for Liberate"""

    def __init__(self,
                 backup_dir: Optional[str] = None,
                 dry_run: bool = False,
                 interactive: bool = False,
                 verbose: bool = False,
                 settings: Optional[Config] = None,
                 identity: Optional[DistroInfo] = None,
                 package_manager: Optional[PackageManager] = None,
                 paths: Optional[SystemPaths] = None,
                 confirmer: Optional[Confirmer] = None):
        """Initialize the application

        Distribution detection and the package manager are only looked up
        when a command needs them, so listing and archive commands work on
        any host.
        """
        self.settings = settings or config
        self.backup_dir = backup_dir or self.settings.get_backup_dir()
        self.dry_run = dry_run
        self.interactive = interactive
        self.verbose = verbose
        self.paths = paths or SystemPaths()
        self.confirmer = confirmer or (PromptConfirmer() if interactive else AlwaysConfirm())
        # Selections always ask, even when everything else is auto-confirmed
        self.select_confirmer = confirmer or PromptConfirmer()
        self._identity = identity
        self._package_manager = package_manager
        self._ctx: Optional[RunContext] = None

        self.store = SnapshotStore(self.backup_dir)
        # Progress bars and verbose log lines would interleave on the terminal
        self.show_progress = False if verbose else None
        logger.debug(f"Using backup directory: {self.backup_dir}")

    @property
    def identity(self) -> DistroInfo:
        if self._identity is None:
            self._identity = get_distro_info()
        return self._identity

    @property
    def package_manager(self) -> PackageManager:
        if self._package_manager is None:
            self._package_manager = PackageManagerFactory.create_for_system()
        return self._package_manager

    @property
    def ctx(self) -> RunContext:
        if self._ctx is None:
            self._ctx = RunContext(
                identity=self.identity,
                paths=self.paths,
                dry_run=self.dry_run,
                interactive=self.interactive,
                confirmer=self.confirmer,
                logger=logging.getLogger("liberate"),
            )
        return self._ctx

    def require_root(self) -> None:
        """Refuse to change the system without root privileges"""
        if self.dry_run or self.paths.root not in ("", "/"):
            return
        if os.geteuid() != 0:
            raise PrerequisiteError("This command must be run as root",
                                    remediation="Run it again with sudo or as the root user")

    def builder(self) -> SnapshotBuilder:
        return SnapshotBuilder(self.ctx, self.store, self.package_manager,
                               show_progress=self.show_progress)

    def orchestrator(self, select: bool = False) -> RestoreOrchestrator:
        ctx = dataclasses.replace(self.ctx, confirmer=self.select_confirmer) if select else self.ctx
        return RestoreOrchestrator(ctx, self.store, self.package_manager,
                                   show_progress=self.show_progress)

    def archiver(self) -> SnapshotArchiver:
        return SnapshotArchiver(self.store, prefix=self.settings.get_export_prefix(),
                                dry_run=self.dry_run, show_progress=self.show_progress)

    def backup(self, select: bool = False) -> BuildReport:
        """Create a standalone backup, optionally choosing the elements"""
        self.require_root()
        builder = self.builder()
        inclusion = builder.select_elements(self.select_confirmer) if select else None
        return builder.build(inclusion)

    def restore(self, name: str = LATEST, policy: RestorePolicy = RestorePolicy.FULL) -> RestoreReport:
        self.require_root()
        return self.orchestrator(select=policy is RestorePolicy.SELECT).restore(name, policy)

    def list_backups(self) -> int:
        return self.store.print_listing()

    def export_backup(self, name: str, output_file: Optional[str] = None) -> str:
        return self.archiver().export(name, output_file)

    def import_backup(self, archive_file: str) -> Optional[SnapshotRef]:
        self.require_root()
        return self.archiver().import_archive(archive_file)

    def prune(self, keep: Optional[int] = None) -> List[str]:
        keep = self.settings.get_retention_count() if keep is None else keep
        return self.store.prune(keep, dry_run=self.dry_run)

    def delete_backup(self, name: str) -> SnapshotRef:
        self.require_root()
        if not self.confirmer.confirm(f"Delete backup {name}?"):
            raise OperationCancelled("Deletion cancelled by user")
        return self.store.delete(name, dry_run=self.dry_run)

    def migrate(self, reinstall_packages: bool = False, install_logos: bool = False,
                no_backup: bool = False, force: bool = False, report: bool = False) -> bool:
        """Back up the host and convert it to the target vendor

        Returns:
            False when the host was already converted and nothing was done

        Raises:
            UnsupportedSystemError: the distribution or version cannot be converted
            PrerequisiteError: disk space or required commands are missing
            OperationCancelled: a confirmation was declined
        """
        self.require_root()
        identity = self.identity.ensure_supported()
        log_file = self.settings.get_log_file()
        migration = Migration(
            self.ctx, self.package_manager,
            reinstall_packages=reinstall_packages,
            install_logos=install_logos,
            reinstall_log=os.path.join(os.path.dirname(log_file) or ".",
                                       REINSTALL_LOG_NAMES.get(self.package_manager.name,
                                                               f"{self.package_manager.name}_migration.log")),
        )

        if not migration.check_already_liberated(force):
            return False
        migration.check_prerequisites(self.backup_dir)

        print("")
        print(f"Detected: {identity}")
        print(f"Target: {TARGET_NAMES[identity.version_major]}")
        print("")
        if self.dry_run:
            logger.warning("DRY-RUN MODE: No changes will be made")

        if not self.confirmer.confirm("Proceed with migration?"):
            logger.info("Migration cancelled by user")
            raise OperationCancelled("Migration cancelled by user")

        backup_path = None
        if no_backup:
            logger.info("Backup disabled by --no-backup option")
        else:
            build = self.builder().build()
            backup_path = build.snapshot.path if build.snapshot else None

        migration.liberate()
        migration.create_marker()
        migration.verify()
        self.prune()

        if report:
            migration.generate_report(backup_path, log_file)

        print("")
        log_success(logger, "Migration completed successfully!")
        print("")
        print(f"Please review the log file: {log_file}")
        if backup_path:
            print(f"Backup saved to: {backup_path}")
        print("")
        print("A system reboot is recommended to complete the migration.")
        print("")
        return True
