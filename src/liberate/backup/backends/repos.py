#!/usr/bin/env python3
"""
Repository definition backend

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
import fnmatch
import logging

from ...utils.releases import TARGET_VENDOR_REPO_PATTERNS
from ..elements import ElementKind, CaptureResult, ReplayResult, REPOS_DIR
from .base import ElementBackend, copy_entry, list_entries

logger = logging.getLogger(__name__)


class ReposBackend(ElementBackend):
    """Files under /etc/yum.repos.d"""

    kind = ElementKind.REPOS

    def capture(self, snapshot_dir: str) -> CaptureResult:
        logger.info("Backing up repository configuration...")
        warnings = []
        dest_dir = os.path.join(snapshot_dir, REPOS_DIR)
        os.makedirs(dest_dir, exist_ok=True)

        repos_dir = self.ctx.paths.resolve(self.ctx.paths.repos_dir)
        count = 0
        for name in list_entries(repos_dir):
            try:
                copy_entry(os.path.join(repos_dir, name), os.path.join(dest_dir, name))
                count += 1
            except (IOError, OSError) as e:
                self._warn(warnings, f"Failed to back up repository file {name}: {e}")

        if not os.path.isdir(repos_dir):
            self._warn(warnings, f"Repository directory {self.ctx.paths.repos_dir} not found")

        return CaptureResult(count, warnings)

    def remove_target_vendor_repos(self) -> int:
        """Delete target vendor repository files from the live system"""
        repos_dir = self.ctx.paths.resolve(self.ctx.paths.repos_dir)
        removed = 0
        for name in list_entries(repos_dir):
            if any(fnmatch.fnmatch(name, pattern) for pattern in TARGET_VENDOR_REPO_PATTERNS):
                os.remove(os.path.join(repos_dir, name))
                logger.info(f"Removed target vendor repository file {name}")
                removed += 1
        return removed

    def replay(self, snapshot_dir: str) -> ReplayResult:
        warnings = []

        # Vendor repo files must be gone before the original release package
        # is installed, or it reports obsoletes conflicts against them
        try:
            self.remove_target_vendor_repos()
        except (IOError, OSError) as e:
            self._warn(warnings, f"Failed to remove target vendor repository files: {e}")

        source_dir = os.path.join(snapshot_dir, REPOS_DIR)
        names = list_entries(source_dir)
        if not names:
            self._warn(warnings, "No repository files in backup")
            return ReplayResult(0, warnings, succeeded=False)

        repos_dir = self.ctx.paths.resolve(self.ctx.paths.repos_dir)
        count = 0
        for name in names:
            try:
                copy_entry(os.path.join(source_dir, name), os.path.join(repos_dir, name))
                count += 1
            except (IOError, OSError) as e:
                self._warn(warnings, f"Failed to restore repository file {name}: {e}")

        logger.info(f"Restored {count} repository file(s)")
        return ReplayResult(count, warnings, succeeded=count > 0)

    def content_count(self, snapshot_dir: str) -> int:
        return len(list_entries(os.path.join(snapshot_dir, REPOS_DIR)))
