#!/usr/bin/env python3
"""
Release identity file backend

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
import logging

from ..elements import ElementKind, CaptureResult, ReplayResult, RELEASE_FILES_DIR
from .base import ElementBackend, list_entries

logger = logging.getLogger(__name__)


class ReleaseFilesBackend(ElementBackend):
    """/etc/os-release and its sibling release files

    These files are kept for reference only. Reinstalling the original
    release package regenerates them, so there is nothing to replay.
    """

    kind = ElementKind.RELEASE_FILES

    def capture(self, snapshot_dir: str) -> CaptureResult:
        logger.info("Backing up release files...")
        warnings = []
        dest_dir = os.path.join(snapshot_dir, RELEASE_FILES_DIR)
        os.makedirs(dest_dir, exist_ok=True)

        count = 0
        for path in self.ctx.paths.release_files:
            live_path = self.ctx.paths.resolve(path)
            if not os.path.isfile(live_path):
                continue
            try:
                # Follow the os-release symlink, the content is what matters here
                shutil.copy2(live_path, os.path.join(dest_dir, os.path.basename(path)))
                count += 1
            except (IOError, OSError) as e:
                self._warn(warnings, f"Failed to back up release file {path}: {e}")

        return CaptureResult(count, warnings)

    def replay(self, snapshot_dir: str) -> ReplayResult:
        logger.info("Release files are regenerated by the original release package")
        return ReplayResult(0)

    def content_count(self, snapshot_dir: str) -> int:
        return len(list_entries(os.path.join(snapshot_dir, RELEASE_FILES_DIR)))
