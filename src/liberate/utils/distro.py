#!/usr/bin/env python3
"""
Distribution detection utilities for Liberate

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

import logging
from typing import Dict, Any

import distro

from ..errors import UnsupportedSystemError

logger = logging.getLogger(__name__)

# Human readable names for the distributions we know how to handle
DISTRO_NAMES = {
    'rocky': 'Rocky Linux',
    'almalinux': 'AlmaLinux',
    'ol': 'Oracle Linux',
    'oracle': 'Oracle Linux',
    'centos': 'CentOS',
    'rhel': 'Red Hat Enterprise Linux',
    'eurolinux': 'EuroLinux',
    'sles': 'SUSE',
    'suse': 'SUSE',
    'sll': 'SUSE',
}

SUPPORTED_MAJOR_VERSIONS = ('7', '8', '9')

# Identities that mean the host already runs the target vendor
TARGET_VENDOR_IDS = ('sll', 'sles', 'suse')


class DistroInfo:
    """Information about the current Linux distribution"""

    def __init__(self, id: str = "", name: str = "", version: str = "",
                 version_major: str = ""):
        self.id = id
        self.name = name
        self.version = version
        self.version_major = version_major or version.split('.', 1)[0]

    def detect(self) -> 'DistroInfo':
        """Detect the current Linux distribution from os-release"""
        self.id = distro.id() or "unknown"
        self.version = distro.version() or "unknown"
        self.version_major = distro.major_version() or self.version.split('.', 1)[0]

        if self.id == 'centos' and 'stream' in distro.name(pretty=True).lower():
            self.name = 'CentOS Stream'
        else:
            self.name = DISTRO_NAMES.get(self.id, distro.name() or self.id)

        logger.info(f"Detected distribution: {self.name} {self.version} ({self.id})")
        return self

    @property
    def is_supported(self) -> bool:
        """Whether this distribution and version can be converted"""
        return self.id in DISTRO_NAMES and self.version_major in SUPPORTED_MAJOR_VERSIONS

    @property
    def is_target_vendor(self) -> bool:
        """Whether the host already identifies as the target vendor"""
        return self.id in TARGET_VENDOR_IDS

    def ensure_supported(self) -> 'DistroInfo':
        """Raise UnsupportedSystemError unless the host can be converted"""
        if self.id not in DISTRO_NAMES:
            raise UnsupportedSystemError(f"Unsupported distribution: {self.id}")
        if self.version_major not in SUPPORTED_MAJOR_VERSIONS:
            raise UnsupportedSystemError(
                f"Unsupported version: {self.version} (major version {self.version_major})",
                remediation=f"Supported major versions are {', '.join(SUPPORTED_MAJOR_VERSIONS)}",
            )
        return self

    @classmethod
    def from_metadata(cls, metadata: Dict[str, Any]) -> 'DistroInfo':
        """Rebuild the identity recorded in a snapshot descriptor"""
        return cls(
            id=metadata.get('os_id', ''),
            name=metadata.get('os_name', ''),
            version=metadata.get('os_version', ''),
            version_major=metadata.get('os_version_major', ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'id': self.id,
            'name': self.name,
            'version': self.version,
            'version_major': self.version_major,
        }

    def __str__(self) -> str:
        return f"{self.name} {self.version}".strip()


def get_distro_info() -> DistroInfo:
    """Get information about the current distribution"""
    return DistroInfo().detect()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    distro_info = get_distro_info()
    print(distro_info)
    print(json.dumps(distro_info.to_dict(), indent=2))
