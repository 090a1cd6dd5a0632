#!/usr/bin/env python3
"""
Package manager configuration backend

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
from typing import List, Tuple

from ..elements import ElementKind, CaptureResult, ReplayResult, CONFIG_DIR
from .base import ElementBackend, copy_entry

logger = logging.getLogger(__name__)


class ConfigBackend(ElementBackend):
    """dnf.conf, yum.conf and the dnf protected packages directory"""

    kind = ElementKind.CONFIG

    def _entries(self) -> List[Tuple[str, str]]:
        """(name inside the snapshot, absolute system path) pairs"""
        paths = self.ctx.paths
        return [
            (os.path.basename(paths.dnf_conf), paths.dnf_conf),
            (os.path.basename(paths.yum_conf), paths.yum_conf),
            (os.path.basename(paths.protected_dir), paths.protected_dir),
        ]

    def capture(self, snapshot_dir: str) -> CaptureResult:
        logger.info("Backing up package manager configuration...")
        warnings = []
        dest_dir = os.path.join(snapshot_dir, CONFIG_DIR)
        os.makedirs(dest_dir, exist_ok=True)

        count = 0
        for name, path in self._entries():
            live_path = self.ctx.paths.resolve(path)
            if not os.path.exists(live_path):
                continue
            try:
                copy_entry(live_path, os.path.join(dest_dir, name))
                count += 1
            except (IOError, OSError) as e:
                self._warn(warnings, f"Failed to back up {path}: {e}")

        return CaptureResult(count, warnings)

    def replay(self, snapshot_dir: str) -> ReplayResult:
        warnings = []
        source_dir = os.path.join(snapshot_dir, CONFIG_DIR)

        count = 0
        for name, path in self._entries():
            source = os.path.join(source_dir, name)
            if not os.path.lexists(source):
                continue
            try:
                copy_entry(source, self.ctx.paths.resolve(path))
                logger.info(f"Restored {path}")
                count += 1
            except (IOError, OSError) as e:
                self._warn(warnings, f"Failed to restore {path}: {e}")

        if count == 0 and not warnings:
            self._warn(warnings, "No package manager configuration in backup")
        return ReplayResult(count, warnings, succeeded=count > 0)

    def content_count(self, snapshot_dir: str) -> int:
        source_dir = os.path.join(snapshot_dir, CONFIG_DIR)
        return sum(1 for name, _ in self._entries() if os.path.lexists(os.path.join(source_dir, name)))
