#!/usr/bin/env python3
"""
Snapshot metadata descriptor

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
import json
import socket
import platform
import datetime
import logging
from typing import Dict, Any, List, Optional

from ..errors import InvalidSnapshotError
from ..utils.distro import DistroInfo
from .elements import ElementKind, METADATA_FILE

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class MetadataDescriptor:
    """Describes one snapshot: where it came from and what it holds

    The descriptor is written last when a snapshot is built, so a snapshot
    without one was interrupted or is not a snapshot at all.
    """

    def __init__(self,
                 backup_timestamp: str,
                 identity: DistroInfo,
                 backed_up_elements: Optional[List[ElementKind]] = None,
                 package_count: int = 0,
                 release_rpm_count: int = 0,
                 backup_date: Optional[str] = None,
                 hostname: Optional[str] = None,
                 kernel: Optional[str] = None,
                 script_version: Optional[str] = None):
        from .. import __version__

        self.backup_timestamp = backup_timestamp
        self.identity = identity
        self.backed_up_elements = ElementKind.ordered(backed_up_elements or [])
        self.package_count = package_count
        self.release_rpm_count = release_rpm_count
        self.backup_date = backup_date or datetime.datetime.now().strftime(DATE_FORMAT)
        self.hostname = hostname if hostname is not None else socket.gethostname()
        self.kernel = kernel if kernel is not None else platform.release()
        self.script_version = script_version or __version__

    def has_element(self, kind: ElementKind) -> bool:
        return kind in self.backed_up_elements

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary in on-disk key order"""
        return {
            'backup_date': self.backup_date,
            'backup_timestamp': self.backup_timestamp,
            'os_name': self.identity.name,
            'os_id': self.identity.id,
            'os_version': self.identity.version,
            'os_version_major': self.identity.version_major,
            'hostname': self.hostname,
            'kernel': self.kernel,
            'package_count': self.package_count,
            'release_rpm_count': self.release_rpm_count,
            'script_version': self.script_version,
            'backed_up_elements': [kind.value for kind in self.backed_up_elements],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MetadataDescriptor':
        """Create a descriptor from a parsed metadata.json

        Unknown element names are ignored. A descriptor written before element
        tracking existed has no ``backed_up_elements`` key and is treated as
        holding every kind.
        """
        if 'backed_up_elements' in data:
            kinds = []
            for value in data.get('backed_up_elements') or []:
                try:
                    kinds.append(ElementKind(value))
                except ValueError:
                    logger.warning(f"Ignoring unknown element kind in metadata: {value}")
        else:
            kinds = list(ElementKind)

        return cls(
            backup_timestamp=str(data.get('backup_timestamp', '')),
            identity=DistroInfo.from_metadata(data),
            backed_up_elements=kinds,
            package_count=_as_int(data.get('package_count')),
            release_rpm_count=_as_int(data.get('release_rpm_count')),
            backup_date=data.get('backup_date', ''),
            hostname=data.get('hostname', ''),
            kernel=data.get('kernel', ''),
            script_version=data.get('script_version', ''),
        )

    def write(self, snapshot_dir: str) -> str:
        """Write metadata.json into a snapshot directory and return its path"""
        path = os.path.join(snapshot_dir, METADATA_FILE)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=4)
            f.write("\n")
        logger.debug(f"Wrote metadata to {path}")
        return path

    @classmethod
    def read(cls, snapshot_dir: str) -> 'MetadataDescriptor':
        """Load the descriptor of a snapshot directory

        Raises:
            InvalidSnapshotError: if metadata.json is missing or not valid JSON
        """
        path = os.path.join(snapshot_dir, METADATA_FILE)
        if not os.path.isfile(path):
            raise InvalidSnapshotError(
                f"No {METADATA_FILE} in {snapshot_dir}",
                remediation="The backup is incomplete; create a new one or import a complete archive",
            )
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (IOError, ValueError) as e:
            raise InvalidSnapshotError(f"Could not read {path}", details=str(e))

        if not isinstance(data, dict):
            raise InvalidSnapshotError(f"Unexpected content in {path}")
        return cls.from_dict(data)


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
