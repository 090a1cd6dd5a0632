#!/usr/bin/env python3
"""
Deleted files backend

Files and directories the conversion deletes outright, kept with their
absolute paths so they can be put back verbatim.

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
from typing import List

from ..elements import (
    ElementKind, CaptureResult, ReplayResult, DELETED_FILES_DIR, DELETED_FILES_MANIFEST
)
from .base import ElementBackend, copy_entry

logger = logging.getLogger(__name__)


class DeletedFilesBackend(ElementBackend):
    """Paths the conversion removes, such as /usr/share/redhat-release"""

    kind = ElementKind.DELETED_FILES

    def _capture_paths(self) -> List[str]:
        paths = self.ctx.paths
        wanted = list(paths.deleted_paths)

        # /etc/os-release is usually a symlink; keep whatever it points to as well
        os_release = paths.resolve(paths.os_release)
        if os.path.islink(os_release):
            target = os.path.realpath(os_release)
            if paths.root not in ("", "/"):
                root = os.path.realpath(paths.root)
                if os.path.commonpath([root, target]) != root:
                    return wanted
                target = "/" + os.path.relpath(target, root)
            if target not in wanted:
                wanted.append(target)

        return wanted

    def capture(self, snapshot_dir: str) -> CaptureResult:
        logger.info("Backing up files that will be deleted during conversion...")
        warnings = []
        dest_root = os.path.join(snapshot_dir, DELETED_FILES_DIR)
        os.makedirs(dest_root, exist_ok=True)

        count = 0
        for path in self._capture_paths():
            live = self.ctx.paths.resolve(path)
            if not os.path.lexists(live):
                continue
            try:
                copy_entry(live, os.path.join(dest_root, path.lstrip("/")))
                logger.debug(f"Backed up {path}")
                count += 1
            except (IOError, OSError) as e:
                self._warn(warnings, f"Failed to back up {path}: {e}")

        manifest = self._payload_paths(dest_root)
        with open(os.path.join(snapshot_dir, DELETED_FILES_MANIFEST), 'w') as f:
            for path in manifest:
                f.write(f"{path}\n")

        logger.info(f"Backed up {count} path(s), {len(manifest)} file(s) in manifest")
        return CaptureResult(count, warnings)

    @staticmethod
    def _payload_paths(dest_root: str) -> List[str]:
        """Absolute system paths of every file and symlink in the payload"""
        found = []
        for dirpath, dirnames, filenames in os.walk(dest_root):
            # Symlinked directories are not descended into but still listed
            for name in list(dirnames):
                if os.path.islink(os.path.join(dirpath, name)):
                    filenames.append(name)
                    dirnames.remove(name)
            for name in filenames:
                rel = os.path.relpath(os.path.join(dirpath, name), dest_root)
                found.append("/" + rel)
        return sorted(found)

    def read_manifest(self, snapshot_dir: str) -> List[str]:
        path = os.path.join(snapshot_dir, DELETED_FILES_MANIFEST)
        if not os.path.isfile(path):
            return []
        with open(path, 'r') as f:
            return [line.strip() for line in f if line.strip()]

    def replay(self, snapshot_dir: str) -> ReplayResult:
        warnings = []
        source_root = os.path.join(snapshot_dir, DELETED_FILES_DIR)
        if not os.path.isdir(source_root):
            self._warn(warnings, "No deleted files in backup")
            return ReplayResult(0, warnings, succeeded=False)

        if not os.path.isfile(os.path.join(snapshot_dir, DELETED_FILES_MANIFEST)):
            self._warn(warnings, "Deleted files manifest missing, restoring the whole payload")
            paths = self._payload_paths(source_root)
        else:
            paths = self.read_manifest(snapshot_dir)

        count = 0
        for path in paths:
            src = os.path.join(source_root, path.lstrip("/"))
            if not os.path.lexists(src):
                self._warn(warnings, f"Listed in manifest but missing from backup: {path}")
                continue
            try:
                copy_entry(src, self.ctx.paths.resolve(path))
                logger.debug(f"Restored {path}")
                count += 1
            except (IOError, OSError) as e:
                self._warn(warnings, f"Failed to restore {path}: {e}")

        logger.info(f"Restored {count} deleted file(s)")
        return ReplayResult(count, warnings, succeeded=count > 0 or not paths)

    def content_count(self, snapshot_dir: str) -> int:
        manifest = self.read_manifest(snapshot_dir)
        if manifest:
            return len(manifest)
        return len(self._payload_paths(os.path.join(snapshot_dir, DELETED_FILES_DIR)))
