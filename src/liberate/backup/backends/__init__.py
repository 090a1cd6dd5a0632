#!/usr/bin/env python3
"""
Element backends

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

from typing import Dict, List, Type

from ...package_managers.base import PackageManager
from ...utils.context import RunContext
from ..elements import ElementKind
from .base import ElementBackend, copy_entry, list_entries
from .packages import PackagesBackend
from .repos import ReposBackend
from .release_files import ReleaseFilesBackend
from .config import ConfigBackend
from .release_rpms import ReleaseRpmsBackend
from .deleted_files import DeletedFilesBackend

BACKENDS: Dict[ElementKind, Type[ElementBackend]] = {
    ElementKind.PACKAGES: PackagesBackend,
    ElementKind.REPOS: ReposBackend,
    ElementKind.RELEASE_FILES: ReleaseFilesBackend,
    ElementKind.CONFIG: ConfigBackend,
    ElementKind.RELEASE_RPMS: ReleaseRpmsBackend,
    ElementKind.DELETED_FILES: DeletedFilesBackend,
}


def create_backends(ctx: RunContext, package_manager: PackageManager) -> Dict[ElementKind, ElementBackend]:
    """Instantiate one backend per element kind"""
    return {kind: backend(ctx, package_manager) for kind, backend in BACKENDS.items()}


__all__: List[str] = [
    'BACKENDS', 'create_backends', 'ElementBackend', 'copy_entry', 'list_entries',
    'PackagesBackend', 'ReposBackend', 'ReleaseFilesBackend', 'ConfigBackend',
    'ReleaseRpmsBackend', 'DeletedFilesBackend',
]
