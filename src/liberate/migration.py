#!/usr/bin/env python3
"""
Conversion of an Enterprise Linux host to the target vendor

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
import shutil
import socket
import platform
import datetime
import logging
from typing import List, Optional

from . import __version__
from .errors import OperationCancelled, PackageManagerError, PrerequisiteError
from .package_managers.base import PackageManager
from .utils.context import RunContext
from .utils.distro import TARGET_VENDOR_IDS
from .utils.log import log_success
from .utils.marker import LiberatedMarker
from .utils.releases import (
    REINSTALL_EXCLUDES, TARGET_LOGOS_PACKAGE, TARGET_RELEASE_PACKAGE, original_release_package
)

logger = logging.getLogger(__name__)

MIN_FREE_SPACE_MB = 100

TARGET_NAMES = {
    '9': 'SUSE Liberty Linux',
    '8': 'SLES Expanded Support',
    '7': 'SLES Expanded Support',
}

# Only present on EL7; fixed up after the release package swap
EL7_UPGRADE_PACKAGES = ['anaconda-core']
EL7_OBSOLETES_REINSTALL_PACKAGES = ['libreport-plugin-bugzilla']


def read_os_release(path: str) -> dict:
    """Parse an os-release style file into a dictionary"""
    values = {}
    if not os.path.isfile(path):
        return values
    with open(path, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            values[key] = value.strip().strip('"\'')
    return values


class Migration:
    """Swaps the original release package for the target vendor's"""

    def __init__(self, ctx: RunContext, package_manager: PackageManager,
                 reinstall_packages: bool = False, install_logos: bool = False,
                 reinstall_log: Optional[str] = None):
        self.ctx = ctx
        self.package_manager = package_manager
        self.reinstall_packages = reinstall_packages
        self.install_logos = install_logos
        self.reinstall_log = reinstall_log
        self.marker = LiberatedMarker(ctx.paths.resolve(ctx.paths.marker))

    @property
    def identity(self):
        return self.ctx.identity

    @property
    def target_release_package(self) -> str:
        return TARGET_RELEASE_PACKAGE[self.identity.version_major]

    def check_already_liberated(self, force: bool = False) -> bool:
        """Whether the conversion should go ahead given the liberated marker"""
        logger.info("Checking if system is already liberated...")
        if not self.marker.is_liberated():
            return True

        values = self.marker.read()
        if not force:
            logger.warning(f"System already liberated on {values.get('LIBERATED_DATE', 'unknown')}")
            logger.warning(f"Original OS: {values.get('LIBERATED_FROM', 'unknown')}")
            logger.warning("Use --force to re-run migration")
            return False

        logger.warning("System already liberated, but --force specified. Continuing...")
        return True

    def _free_space_mb(self, path: str) -> Optional[int]:
        while path and not os.path.exists(path):
            parent = os.path.dirname(path)
            if parent == path:
                break
            path = parent
        try:
            return shutil.disk_usage(path).free // (1024 * 1024)
        except OSError as e:
            logger.warning(f"Could not determine available disk space: {e}")
            return None

    def check_prerequisites(self, backup_dir: str) -> None:
        """Verify disk space and required commands before converting

        Raises:
            PrerequisiteError: listing every failed check
        """
        logger.info("Checking prerequisites...")
        errors: List[str] = []

        available = self._free_space_mb(backup_dir)
        if available is not None:
            if available < MIN_FREE_SPACE_MB:
                errors.append(f"Insufficient disk space: {available}MB available, "
                              f"{MIN_FREE_SPACE_MB}MB required")
            else:
                logger.info(f"Disk space check passed: {available}MB available")

        logger.info("Checking repository connectivity...")
        if not self.package_manager.repolist():
            logger.warning(f"{self.package_manager.name.upper()} repository check failed - "
                           f"ensure SUSE repos are configured")

        missing = [cmd for cmd in ('rpm',) if not shutil.which(cmd)]
        if not shutil.which('dnf') and not shutil.which('yum'):
            missing.append('dnf or yum')
        if missing:
            errors.append(f"Missing required commands: {' '.join(missing)}")

        if errors:
            for error in errors:
                logger.error(error)
            raise PrerequisiteError(
                f"Prerequisites check failed with {len(errors)} error(s)",
                details="; ".join(errors),
            )
        log_success(logger, "All prerequisites satisfied")

    def _is_centos_stream(self) -> bool:
        if self.identity.version_major == '9' or 'stream' in self.identity.name.lower():
            return True
        centos_release = self.ctx.paths.resolve('/etc/centos-release')
        if os.path.isfile(centos_release):
            with open(centos_release, 'r') as f:
                return 'stream' in f.read().lower()
        return False

    def original_release_package(self) -> str:
        identity = self.identity
        stream = identity.id == 'centos' and identity.version_major != '7' and self._is_centos_stream()
        name = original_release_package(identity.id, identity.version_major, stream)
        if not name:
            raise PrerequisiteError(f"Unknown EL{identity.version_major} distribution: {identity.id}")
        return name

    def _remove_path(self, path: str) -> None:
        live = self.ctx.paths.resolve(path)
        if not os.path.lexists(live):
            return
        if self.ctx.dry_run:
            logger.warning(f"[DRY-RUN] Would remove {path}")
            return
        logger.info(f"Removing {path}...")
        if os.path.isdir(live) and not os.path.islink(live):
            shutil.rmtree(live)
        else:
            os.remove(live)

    def _run(self, description: str, action, *args, **kwargs) -> bool:
        if self.ctx.dry_run:
            logger.warning(f"[DRY-RUN] Would {description}")
            return True
        logger.info(f"Executing: {description}")
        return action(*args, **kwargs)

    def liberate(self) -> None:
        """Replace the release package for the detected major version

        Raises:
            OperationCancelled: the confirmation was declined
            PackageManagerError: the target release package could not be installed
        """
        major = self.identity.version_major
        logger.info(f"Starting EL{major} liberation process...")
        release_pkg = self.original_release_package()
        target_pkg = self.target_release_package

        if not self.ctx.confirm(f"Remove {release_pkg} and install {TARGET_NAMES[major]}?"):
            logger.info("Liberation cancelled by user")
            raise OperationCancelled("Liberation cancelled by user")

        if self.package_manager.is_installed(release_pkg):
            self._run(f"remove {release_pkg}", self.package_manager.remove, [release_pkg], nodeps=True)
        else:
            logger.warning(f"Package {release_pkg} not found, skipping removal")

        self._remove_path(self.ctx.paths.redhat_release_dir)
        if major != '7':
            self._remove_path(self.ctx.paths.protected_release_conf)

        if not self._run(f"install {target_pkg}", self.package_manager.install, [target_pkg]):
            raise PackageManagerError(
                f"Failed to install {target_pkg}",
                remediation="Make sure the SUSE repositories are configured and reachable",
            )

        if self.install_logos:
            logos = TARGET_LOGOS_PACKAGE[major]
            if not self._run(f"install {logos}", self.package_manager.install, [logos]):
                logger.warning(f"Could not install {logos}")

        if major == '7':
            self._apply_el7_fixes()

        if self.reinstall_packages:
            self._reinstall_all()

        log_success(logger, f"EL{major} liberation completed")

    def _apply_el7_fixes(self) -> None:
        logger.info("Applying EL7 specific fixes...")
        for name in EL7_UPGRADE_PACKAGES:
            if self.package_manager.is_installed(name):
                if not self._run(f"upgrade {name}", self.package_manager.upgrade, [name]):
                    logger.warning(f"Could not upgrade {name}")
        for name in EL7_OBSOLETES_REINSTALL_PACKAGES:
            if self.package_manager.is_installed(name):
                if not self._run(f"reinstall {name}", self.package_manager.reinstall, [name], obsoletes=True):
                    logger.warning(f"Could not reinstall {name}")

    def _reinstall_all(self) -> None:
        major = self.identity.version_major
        logger.info("Reinstalling all packages from SUSE repos (this may take a while)...")
        if not self.ctx.confirm("Proceed with package reinstallation?"):
            logger.info("Package reinstallation skipped")
            return

        # EL7 yum cannot glob, so it gets the explicit package list
        names = self.package_manager.query_installed() if major == '7' else ['*']
        names = [name.strip() for name in names if name.strip()]
        if not self._run("reinstall all packages", self.package_manager.reinstall, names,
                         excludes=REINSTALL_EXCLUDES[major], log_file=self.reinstall_log,
                         obsoletes=major == '7'):
            logger.warning("Some packages could not be reinstalled")

    def create_marker(self) -> None:
        logger.info("Creating liberated marker file...")
        if self.ctx.dry_run:
            logger.warning(f"[DRY-RUN] Would create {self.ctx.paths.marker}")
            return
        self.marker.write(str(self.identity), reinstalled=self.reinstall_packages)
        log_success(logger, f"Liberated marker created at {self.ctx.paths.marker}")

    def verify(self) -> bool:
        """Check the marker, os-release and target release package after converting"""
        logger.info("Verifying migration...")
        problems = 0

        if not self.marker.exists():
            logger.warning("Liberated marker not found")
            problems += 1

        os_release = self.ctx.paths.resolve(self.ctx.paths.os_release)
        if os.path.isfile(os_release):
            os_id = read_os_release(os_release).get('ID', 'unknown')
            if os_id in TARGET_VENDOR_IDS:
                logger.info(f"{self.ctx.paths.os_release} shows SUSE distribution")
            else:
                logger.warning(f"{self.ctx.paths.os_release} does not show SUSE (ID={os_id})")
                problems += 1

        installed = [name for name in ('sll-release', 'sles_es-release', 'sles_es-release-server')
                     if self.package_manager.is_installed(name)]
        if installed:
            logger.info(f"{installed[0]} package is installed")
        else:
            logger.warning("No SUSE release package found")
            problems += 1

        if problems:
            logger.warning(f"Migration verification completed with {problems} warning(s)")
            return False
        log_success(logger, "Migration verification passed")
        return True

    def generate_report(self, backup_path: Optional[str] = None, log_file: Optional[str] = None,
                        now: Optional[datetime.datetime] = None) -> Optional[str]:
        """Write a plain text migration report and return its path"""
        now = now or datetime.datetime.now()
        report_dir = self.ctx.paths.resolve(self.ctx.paths.report_dir)
        report_file = os.path.join(report_dir, f"liberate_report_{now.strftime('%Y%m%d_%H%M%S')}.txt")

        logger.info("Generating migration report...")
        if self.ctx.dry_run:
            logger.warning(f"[DRY-RUN] Would generate report at {report_file}")
            return None

        current = read_os_release(self.ctx.paths.resolve(self.ctx.paths.os_release))
        vendor_packages = sorted(
            name for name in self.package_manager.query_installed()
            if name.strip() and any(tag in name for tag in ('sll', 'sles_es', 'suse'))
        )

        lines = [
            "==========================================",
            "SUSE Liberation Migration Report",
            "==========================================",
            "",
            f"Report generated: {now.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Script version: {__version__}",
            "",
            "-- Original System --",
            f"Distribution: {self.identity.name}",
            f"Version: {self.identity.version}",
            "",
            "-- Current System --",
            f"Name: {current.get('PRETTY_NAME', 'unknown')}",
            f"ID: {current.get('ID', 'unknown')}",
            f"Version: {current.get('VERSION_ID', 'unknown')}",
            "",
            "-- Kernel --",
            f"{platform.system()} {socket.gethostname()} {platform.release()} {platform.version()} "
            f"{platform.machine()}",
            "",
            "-- Installed SUSE Packages --",
        ]
        lines.extend(name.strip() for name in vendor_packages)
        if not vendor_packages:
            lines.append("None found")

        lines.extend(["", "-- Liberated Marker --"])
        if self.marker.exists():
            with open(self.marker.path, 'r') as f:
                lines.extend(f.read().splitlines())
        else:
            lines.append("Not found")

        lines.extend(["", "-- Backup Location --", backup_path or "No backup created", "",
                      "-- Migration Log --"])
        if log_file and os.path.isfile(log_file):
            with open(log_file, 'r', errors='replace') as f:
                lines.extend(f.read().splitlines()[-50:])
        else:
            lines.append("Log file not found")
        lines.extend(["", "==========================================", "End of Report",
                      "=========================================="])

        os.makedirs(report_dir, exist_ok=True)
        with open(report_file, 'w') as f:
            f.write("\n".join(lines) + "\n")

        log_success(logger, f"Report saved to {report_file}")
        print("")
        print("==========================================")
        print("Migration Summary")
        print("==========================================")
        print(f"Original OS: {self.identity}")
        print(f"Current OS: {current.get('PRETTY_NAME', 'unknown')}")
        print(f"Report file: {report_file}")
        if log_file:
            print(f"Log file: {log_file}")
        if backup_path:
            print(f"Backup: {backup_path}")
        print("==========================================")
        return report_file
