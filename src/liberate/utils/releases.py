#!/usr/bin/env python3
"""
Static release package and file tables for supported distributions

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

import re
from typing import Dict, List, Tuple

# Release packages per distribution id. "{major}" is replaced with the major version.
RELEASE_PACKAGES: Dict[str, List[str]] = {
    'rocky': ['rocky-release', 'rocky-repos', 'rocky-gpg-keys'],
    'almalinux': ['almalinux-release', 'almalinux-repos', 'almalinux-gpg-keys'],
    'ol': ['oraclelinux-release', 'oraclelinux-release-el{major}',
           'oracle-epel-release-el{major}', 'oracle-release-el{major}'],
    'eurolinux': ['eurolinux-release', 'eurolinux-repos'],
    'rhel': ['redhat-release', 'redhat-release-server'],
}
RELEASE_PACKAGES['oracle'] = RELEASE_PACKAGES['ol']

# Version specific additions
RELEASE_PACKAGES_BY_VERSION: Dict[Tuple[str, str], List[str]] = {
    ('rocky', '9'): ['rocky-release-9'],
    ('rocky', '8'): ['rocky-release-8'],
    ('centos', '7'): ['centos-release', 'centos-release-cr'],
    ('centos', '8'): ['centos-stream-release', 'centos-stream-repos', 'centos-gpg-keys'],
    ('centos', '9'): ['centos-stream-release', 'centos-stream-repos', 'centos-gpg-keys'],
}

# Packages that may belong to any of the supported distributions
COMMON_RELEASE_PACKAGES = ['system-release', 'redhat-logos', 'os-prober']

# Fallback scan for locally installed "*-release[-variant]" packages
RELEASE_NAME_PATTERN = re.compile(r'^[a-z]+-release(-[a-z0-9]+)?$')

# Name fragments identifying the target vendor's own packages
TARGET_VENDOR_MARKERS = ('sll', 'sles')

# Target vendor release and branding packages, removed when restoring
TARGET_VENDOR_PACKAGES = [
    'sll-release',
    'sll-logos',
    'sles_es-release',
    'sles_es-logos',
    'sles_es-release-server',
]

# Target vendor repository files, removed before original repositories are replayed
TARGET_VENDOR_REPO_PATTERNS = ['SLL*.repo', 'sles*.repo']

# Release package installed by the conversion, per major version
TARGET_RELEASE_PACKAGE = {
    '9': 'sll-release',
    '8': 'sles_es-release',
    '7': 'sles_es-release-server',
}

TARGET_LOGOS_PACKAGE = {
    '9': 'sll-logos',
    '8': 'sles_es-logos',
    '7': 'sles_es-logos',
}

# Original release package removed by the conversion, per distribution id
ORIGINAL_RELEASE_PACKAGE = {
    'rocky': 'rocky-release',
    'almalinux': 'almalinux-release',
    'ol': 'oraclelinux-release',
    'oracle': 'oraclelinux-release',
    'rhel': 'redhat-release',
    'eurolinux': 'eurolinux-release',
}

# Identity files captured as release files
RELEASE_FILES = [
    '/etc/os-release',
    '/etc/redhat-release',
    '/etc/system-release',
    '/etc/centos-release',
]

# Files and directories removed or overwritten by the conversion
DELETED_PATHS = [
    '/usr/share/redhat-release',
    '/etc/dnf/protected.d/redhat-release.conf',
    '/etc/os-release',
    '/etc/redhat-release',
    '/etc/system-release',
    '/etc/system-release-cpe',
    '/etc/centos-release',
    '/etc/oracle-release',
    '/etc/rocky-release',
    '/etc/almalinux-release',
    '/etc/eurolinux-release',
]

# Packages never reinstalled from the target vendor repositories
REINSTALL_EXCLUDES = {
    '9': ['venv-salt-minion'],
    '8': ['venv-salt-minion', 'salt-minion'],
    '7': ['venv-salt-minion', 'salt-minion', 'libreport-plugin-bugzilla'],
}


def release_packages_for(os_id: str, version_major: str) -> List[str]:
    """Candidate release packages for a distribution, before filtering to installed ones"""
    packages = [name.format(major=version_major) for name in RELEASE_PACKAGES.get(os_id, [])]
    packages.extend(RELEASE_PACKAGES_BY_VERSION.get((os_id, version_major), []))
    packages.extend(COMMON_RELEASE_PACKAGES)
    return packages


def original_release_package(os_id: str, version_major: str, stream: bool = False) -> str:
    """The release package the conversion replaces"""
    if os_id == 'centos':
        return 'centos-stream-release' if stream else 'centos-release'
    if os_id in ('ol', 'oracle') and version_major == '7':
        return 'oraclelinux-release-el7'
    if os_id == 'rhel' and version_major == '7':
        return 'redhat-release-server'
    return ORIGINAL_RELEASE_PACKAGE.get(os_id, '')


def is_target_vendor_name(name: str) -> bool:
    """Whether a package name belongs to the target vendor"""
    return any(marker in name for marker in TARGET_VENDOR_MARKERS)
