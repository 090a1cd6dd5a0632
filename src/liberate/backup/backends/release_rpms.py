#!/usr/bin/env python3
"""
Release package RPM backend

Keeps the original release packages themselves so a restore can work offline.

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
import hashlib
import logging
from typing import Dict, List, Optional

import requests

from ...utils.releases import (
    RELEASE_NAME_PATTERN, is_target_vendor_name, release_packages_for
)
from ..elements import (
    ElementKind, CaptureResult, ReplayResult,
    RPMS_DIR, RPM_CHECKSUMS, RELEASE_PACKAGES_LIST, RELEASE_PACKAGES_INFO
)
from .base import ElementBackend, list_entries

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 120


def sha256_file(path: str) -> str:
    """Calculate the SHA-256 checksum of a file"""
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def write_checksums(rpm_dir: str) -> int:
    """Write a sha256sum compatible SHA256SUMS file for the RPMs in a directory"""
    rpms = [name for name in list_entries(rpm_dir) if name.endswith('.rpm')]
    with open(os.path.join(rpm_dir, RPM_CHECKSUMS), 'w') as f:
        for name in rpms:
            f.write(f"{sha256_file(os.path.join(rpm_dir, name))}  {name}\n")
    return len(rpms)


def verify_checksums(rpm_dir: str) -> List[str]:
    """Names of RPMs whose checksum does not match SHA256SUMS"""
    checksum_file = os.path.join(rpm_dir, RPM_CHECKSUMS)
    failed = []
    with open(checksum_file, 'r') as f:
        for line in f:
            parts = line.strip().split(None, 1)
            if len(parts) != 2:
                continue
            expected, name = parts[0], parts[1].lstrip('*')
            path = os.path.join(rpm_dir, name)
            if not os.path.isfile(path) or sha256_file(path) != expected:
                failed.append(name)
    return failed


class ReleaseRpmsBackend(ElementBackend):
    """RPM payloads of the distribution release packages"""

    kind = ElementKind.RELEASE_RPMS

    def release_packages(self) -> List[str]:
        """Installed release packages for the running distribution

        Combines the static table for the distribution with any other
        installed *-release[-variant] package that is not the target vendor's.
        """
        identity = self.ctx.identity
        installed = []
        for name in release_packages_for(identity.id, identity.version_major):
            if name not in installed and self.package_manager.is_installed(name):
                installed.append(name)

        for name in self.package_manager.query_installed('%{NAME}\\n'):
            name = name.strip()
            if (RELEASE_NAME_PATTERN.match(name) and not is_target_vendor_name(name)
                    and name not in installed):
                installed.append(name)

        return installed

    def capture(self, snapshot_dir: str) -> CaptureResult:
        logger.info("Backing up release RPM files...")
        warnings = []
        rpm_dir = os.path.join(snapshot_dir, RPMS_DIR)
        os.makedirs(rpm_dir, exist_ok=True)

        packages = self.release_packages()
        with open(os.path.join(snapshot_dir, RELEASE_PACKAGES_LIST), 'w') as f:
            for name in packages:
                f.write(f"{name}\n")

        if not packages:
            self._warn(warnings, "No release packages found to backup")
            return CaptureResult(0, warnings)

        logger.info(f"Release packages to backup: {' '.join(packages)}")

        # The first method that yields at least one file wins
        for method in (self._download, self._copy_from_cache, self._fetch_from_url):
            try:
                if method(packages, rpm_dir, warnings):
                    break
            except (IOError, OSError) as e:
                self._warn(warnings, f"RPM backup method {method.__name__.lstrip('_')} failed: {e}")

        rpm_count = self._count_rpms(rpm_dir)
        if rpm_count > 0:
            write_checksums(rpm_dir)
            logger.info(f"Backed up {rpm_count} RPM file(s) to {rpm_dir}")
        else:
            self._warn(warnings, "Could not download release RPMs. Backup will contain package list only.")
            logger.warning(f"For full restore capability, manually copy RPMs to: {rpm_dir}")

        self._write_package_info(packages, snapshot_dir)
        return CaptureResult(rpm_count, warnings)

    def _download(self, packages: List[str], rpm_dir: str, warnings: List[str]) -> bool:
        if not self.package_manager.download(packages, rpm_dir):
            logger.info("Package manager download failed")
        return self._count_rpms(rpm_dir) > 0

    def _copy_from_cache(self, packages: List[str], rpm_dir: str, warnings: List[str]) -> bool:
        logger.info("Direct download failed, looking for RPMs in package manager caches...")
        wanted: Dict[str, str] = {}
        for name in packages:
            filename = self.package_manager.query_filename(name)
            if filename:
                wanted[filename] = name

        found = False
        for filename in wanted:
            cached = self._find_in_cache(filename)
            if cached:
                shutil.copy2(cached, os.path.join(rpm_dir, filename))
                logger.info(f"Recovered {filename} from {os.path.dirname(cached)}")
                found = True
        return found

    def _find_in_cache(self, filename: str) -> Optional[str]:
        for cache_dir in self.ctx.paths.rpm_cache_dirs:
            for dirpath, _, filenames in os.walk(self.ctx.paths.resolve(cache_dir)):
                if filename in filenames:
                    return os.path.join(dirpath, filename)
        return None

    def _fetch_from_url(self, packages: List[str], rpm_dir: str, warnings: List[str]) -> bool:
        logger.info("Trying repository URL method...")
        found = False
        for name in packages:
            url = self.package_manager.query_location(name)
            if not url:
                continue
            target = os.path.join(rpm_dir, os.path.basename(url.split('?', 1)[0]) or f"{name}.rpm")
            try:
                resp = requests.get(url, stream=True, timeout=DOWNLOAD_TIMEOUT, allow_redirects=True)
                resp.raise_for_status()
                with open(target, 'wb') as f:
                    for chunk in resp.iter_content(chunk_size=8192):
                        f.write(chunk)
                found = True
            except requests.RequestException as e:
                self._warn(warnings, f"Failed to fetch {name} from {url}: {e}")
                if os.path.exists(target):
                    os.remove(target)
        return found

    def _write_package_info(self, packages: List[str], snapshot_dir: str) -> None:
        logger.info("Saving detailed package information...")
        with open(os.path.join(snapshot_dir, RELEASE_PACKAGES_INFO), 'w') as f:
            for name in packages:
                f.write(self.package_manager.query_info(name))
                f.write("---\n")

    @staticmethod
    def _count_rpms(rpm_dir: str) -> int:
        return len([name for name in list_entries(rpm_dir) if name.endswith('.rpm')])

    def listed_packages(self, snapshot_dir: str) -> List[str]:
        """Release package names recorded in a snapshot"""
        path = os.path.join(snapshot_dir, RELEASE_PACKAGES_LIST)
        if not os.path.isfile(path):
            return []
        with open(path, 'r') as f:
            return [line.strip() for line in f if line.strip()]

    def payload_count(self, snapshot_dir: str) -> int:
        return self._count_rpms(os.path.join(snapshot_dir, RPMS_DIR))

    def replay(self, snapshot_dir: str) -> ReplayResult:
        if self.payload_count(snapshot_dir) > 0:
            result = self.replay_payload(snapshot_dir)
            if result.succeeded:
                return result
            fallback = self.replay_from_repositories(snapshot_dir)
            fallback.warnings = result.warnings + fallback.warnings
            return fallback
        return self.replay_from_repositories(snapshot_dir)

    def replay_payload(self, snapshot_dir: str) -> ReplayResult:
        """Install the captured RPMs with conflict tolerant flags"""
        warnings = []
        rpm_dir = os.path.join(snapshot_dir, RPMS_DIR)
        rpms = [os.path.join(rpm_dir, name) for name in list_entries(rpm_dir) if name.endswith('.rpm')]

        if os.path.isfile(os.path.join(rpm_dir, RPM_CHECKSUMS)):
            logger.info("Verifying RPM checksums...")
            failed = verify_checksums(rpm_dir)
            if failed:
                self._warn(warnings, f"Checksum verification failed for: {', '.join(failed)}")

        logger.info("Installing RPMs from backup...")
        # Forced and dependency-unchecked so they can coexist with the vendor release package
        if self.package_manager.install_local(rpms, force=True, nodeps=True):
            logger.info("Release packages installed from backup")
            return ReplayResult(len(rpms), warnings)

        self._warn(warnings, "Some RPMs failed to install")
        return ReplayResult(0, warnings, succeeded=False)

    def replay_from_repositories(self, snapshot_dir: str) -> ReplayResult:
        """Install the recorded release packages from the enabled repositories"""
        warnings = []
        packages = self.listed_packages(snapshot_dir)
        if not packages:
            self._warn(warnings, "No release packages recorded in backup")
            return ReplayResult(0, warnings, succeeded=False)

        logger.info("RPMs not in backup, attempting install from repositories...")
        self.package_manager.clean_cache()
        if self.package_manager.install(packages, allow_erasing=True):
            return ReplayResult(len(packages), warnings)

        self._warn(warnings, "Could not install release packages, manual installation required: "
                             + " ".join(packages))
        return ReplayResult(0, warnings, succeeded=False)

    def content_count(self, snapshot_dir: str) -> int:
        return self.payload_count(snapshot_dir) or len(self.listed_packages(snapshot_dir))
