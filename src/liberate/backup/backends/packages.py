#!/usr/bin/env python3
"""
Installed package list backend

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

from ..elements import ElementKind, CaptureResult, ReplayResult, PACKAGES_LIST
from .base import ElementBackend

logger = logging.getLogger(__name__)

PACKAGE_QUERY_FORMAT = '%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}\\n'


class PackagesBackend(ElementBackend):
    """Full NAME-VERSION-RELEASE.ARCH listing of installed packages

    The list is advisory: restores report it but never act on it directly.
    """

    kind = ElementKind.PACKAGES

    def capture(self, snapshot_dir: str) -> CaptureResult:
        logger.info("Backing up package list...")
        warnings = []

        packages = sorted(self.package_manager.query_installed(PACKAGE_QUERY_FORMAT))
        if not packages:
            self._warn(warnings, "Could not list installed packages, package list is empty")

        with open(os.path.join(snapshot_dir, PACKAGES_LIST), 'w') as f:
            for package in packages:
                f.write(f"{package}\n")

        return CaptureResult(len(packages), warnings)

    def replay(self, snapshot_dir: str) -> ReplayResult:
        count = self.content_count(snapshot_dir)
        if count:
            logger.info(f"Package list with {count} packages available at "
                        f"{os.path.join(snapshot_dir, PACKAGES_LIST)}")
        return ReplayResult(count)

    def content_count(self, snapshot_dir: str) -> int:
        path = os.path.join(snapshot_dir, PACKAGES_LIST)
        if not os.path.isfile(path):
            return 0
        with open(path, 'r') as f:
            return sum(1 for line in f if line.strip())
