#!/usr/bin/env python3
"""
Base element backend abstract class and shared file helpers

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
from abc import ABC, abstractmethod
from typing import List

from ...package_managers.base import PackageManager
from ...utils.context import RunContext
from ..elements import ElementKind, CaptureResult, ReplayResult

logger = logging.getLogger(__name__)


def copy_entry(src: str, dst: str) -> None:
    """Copy a file, symlink or directory preserving attributes, like cp -a

    An existing non-directory destination is replaced. Directories are
    merged into an existing destination directory.
    """
    parent = os.path.dirname(dst)
    if parent:
        os.makedirs(parent, exist_ok=True)

    if os.path.isdir(src) and not os.path.islink(src):
        shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)
        shutil.copystat(src, dst)
        return

    if os.path.lexists(dst) and (os.path.islink(dst) or not os.path.isdir(dst)):
        os.remove(dst)
    shutil.copy2(src, dst, follow_symlinks=False)


def list_entries(directory: str) -> List[str]:
    """Sorted names in a directory, empty when it does not exist"""
    if not os.path.isdir(directory):
        return []
    return sorted(os.listdir(directory))


class ElementBackend(ABC):
    """Captures one element kind from the live system and replays it back"""

    kind: ElementKind

    def __init__(self, ctx: RunContext, package_manager: PackageManager):
        self.ctx = ctx
        self.package_manager = package_manager

    def _warn(self, warnings: List[str], message: str) -> None:
        logger.warning(message)
        warnings.append(message)

    @abstractmethod
    def capture(self, snapshot_dir: str) -> CaptureResult:
        """Copy this element from the live system into a snapshot directory"""
        pass

    @abstractmethod
    def replay(self, snapshot_dir: str) -> ReplayResult:
        """Put this element from a snapshot directory back onto the live system"""
        pass

    @abstractmethod
    def content_count(self, snapshot_dir: str) -> int:
        """How many items of this element a snapshot holds"""
        pass
