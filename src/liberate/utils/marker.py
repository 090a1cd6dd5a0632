#!/usr/bin/env python3
"""
Liberated marker file handling

The marker records that a host completed the conversion. It is a shell style
KEY="value" file so it can still be sourced by scripts.

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
from datetime import datetime
from typing import Dict, Optional

from .. import __version__

logger = logging.getLogger(__name__)


class LiberatedMarker:
    """The persistent flag written after a successful conversion"""

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def read(self) -> Dict[str, str]:
        """Parse the marker into a dictionary, empty if it is missing or unreadable"""
        values = {}
        if not self.exists():
            return values

        try:
            with open(self.path, 'r') as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith('#') or '=' not in line:
                        continue
                    key, value = line.split('=', 1)
                    values[key.strip()] = value.strip().strip('"')
        except (IOError, OSError) as e:
            logger.warning(f"Could not read liberated marker {self.path}: {e}")

        return values

    def is_liberated(self) -> bool:
        return self.read().get('LIBERATED', 'false') == 'true'

    def write(self, liberated_from: str, reinstalled: bool = False,
              when: Optional[datetime] = None) -> None:
        """Create the marker for a completed conversion"""
        when = when or datetime.now()
        os.makedirs(os.path.dirname(self.path), exist_ok=True)

        with open(self.path, 'w') as f:
            f.write("# SUSE Liberation marker file\n")
            f.write(f"# Created by liberate v{__version__}\n")
            f.write('LIBERATED="true"\n')
            f.write(f'LIBERATED_FROM="{liberated_from}"\n')
            f.write(f'LIBERATED_DATE="{when.strftime("%Y-%m-%d %H:%M:%S")}"\n')
            f.write(f'LIBERATED_REINSTALLED="{"true" if reinstalled else "false"}"\n')

        logger.info(f"Liberated marker created at {self.path}")

    def remove(self) -> bool:
        """Delete the marker, returning whether one was removed"""
        if not os.path.lexists(self.path):
            return False
        os.remove(self.path)
        logger.info("Removed liberated marker")
        return True
