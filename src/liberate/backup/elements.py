#!/usr/bin/env python3
"""
Element kinds captured in a snapshot and the results of capturing or replaying them

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

from enum import Enum
from typing import List, Optional


class ElementKind(Enum):
    """The closed set of element kinds a snapshot can hold"""
    PACKAGES = "packages"
    REPOS = "repos"
    RELEASE_FILES = "release_files"
    CONFIG = "config"
    RELEASE_RPMS = "release_rpms"
    DELETED_FILES = "deleted_files"

    @property
    def description(self) -> str:
        return ELEMENT_DESCRIPTIONS[self]

    @classmethod
    def ordered(cls, kinds) -> List['ElementKind']:
        """Sort kinds into their canonical order"""
        kinds = set(kinds)
        return [kind for kind in cls if kind in kinds]


ELEMENT_DESCRIPTIONS = {
    ElementKind.PACKAGES: "installed package list",
    ElementKind.REPOS: "repository configuration",
    ElementKind.RELEASE_FILES: "release files",
    ElementKind.CONFIG: "package manager configuration",
    ElementKind.RELEASE_RPMS: "release package RPMs",
    ElementKind.DELETED_FILES: "files removed by the conversion",
}

# On-disk names inside a snapshot directory
PACKAGES_LIST = "packages.list"
REPOS_DIR = "repos"
RELEASE_FILES_DIR = "release-files"
CONFIG_DIR = "dnf-yum-config"
RPMS_DIR = "rpms"
RPM_CHECKSUMS = "SHA256SUMS"
RELEASE_PACKAGES_LIST = "release-packages.list"
RELEASE_PACKAGES_INFO = "release-packages-info.txt"
DELETED_FILES_DIR = "deleted-files"
DELETED_FILES_MANIFEST = "deleted-files.manifest"
METADATA_FILE = "metadata.json"


class CaptureResult:
    """Outcome of capturing one element kind"""

    def __init__(self, count: int = 0, warnings: Optional[List[str]] = None):
        self.count = count
        self.warnings = warnings or []

    def __repr__(self) -> str:
        return f"CaptureResult(count={self.count}, warnings={len(self.warnings)})"


class ReplayResult:
    """Outcome of replaying one element kind or restore action"""

    def __init__(self, count: int = 0, warnings: Optional[List[str]] = None,
                 succeeded: bool = True):
        self.count = count
        self.warnings = warnings or []
        self.succeeded = succeeded

    def __repr__(self) -> str:
        return (f"ReplayResult(count={self.count}, warnings={len(self.warnings)}, "
                f"succeeded={self.succeeded})")
