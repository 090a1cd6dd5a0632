#!/usr/bin/env python3
"""
Base package manager abstract class and interfaces

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

from abc import ABC, abstractmethod
from typing import List, Optional
import subprocess
import shutil
import logging

logger = logging.getLogger(__name__)


class PackageManager(ABC):
    """Base class for the package manager capability used by Liberate"""

    def __init__(self, name: str):
        self.name = name
        self.available = self._check_available()

    def _check_available(self) -> bool:
        """Check if this package manager is available on the system"""
        return shutil.which(self.name) is not None

    def _run_command(self, cmd: List[str], check: bool = False,
                     timeout: Optional[int] = None) -> subprocess.CompletedProcess:
        """Run a command, logging its output at debug level"""
        logger.info(f"Executing: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                check=check,
                timeout=timeout
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"Error running {' '.join(cmd)}: {e}")
            raise
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.error(f"Could not run {' '.join(cmd)}: {e}")
            return subprocess.CompletedProcess(cmd, 1, "", str(e))

        for line in (result.stdout or "").splitlines():
            logger.debug(line)
        if result.returncode != 0 and result.stderr:
            logger.debug(result.stderr.strip())
        return result

    @abstractmethod
    def query_installed(self, query_format: str = "%{NAME}\\n") -> List[str]:
        """List installed packages formatted with an rpm query format"""
        pass

    @abstractmethod
    def is_installed(self, package_name: str) -> bool:
        """Check if a package is installed"""
        pass

    @abstractmethod
    def query_info(self, package_name: str) -> str:
        """Verbose information about an installed package"""
        pass

    @abstractmethod
    def query_filename(self, package_name: str) -> Optional[str]:
        """The NAME-VERSION-RELEASE.ARCH.rpm file name of an installed package"""
        pass

    @abstractmethod
    def query_location(self, package_name: str) -> Optional[str]:
        """Download URL of a package in the enabled repositories"""
        pass

    @abstractmethod
    def install(self, package_names: List[str], allow_erasing: bool = False) -> bool:
        """Install packages from the enabled repositories"""
        pass

    @abstractmethod
    def install_local(self, rpm_paths: List[str], force: bool = True, nodeps: bool = True) -> bool:
        """Install or upgrade local package files"""
        pass

    @abstractmethod
    def remove(self, package_names: List[str], nodeps: bool = True) -> bool:
        """Erase installed packages"""
        pass

    @abstractmethod
    def download(self, package_names: List[str], destdir: str) -> bool:
        """Download packages into a directory without installing them"""
        pass

    @abstractmethod
    def clean_cache(self) -> bool:
        """Clean the package manager metadata cache"""
        pass

    @abstractmethod
    def repolist(self) -> bool:
        """Check that the enabled repositories can be queried"""
        pass

    @abstractmethod
    def upgrade(self, package_names: List[str]) -> bool:
        """Upgrade installed packages"""
        pass

    @abstractmethod
    def reinstall(self, package_names: List[str], excludes: Optional[List[str]] = None,
                  log_file: Optional[str] = None, obsoletes: bool = False) -> bool:
        """Reinstall packages, or everything when package_names is ['*']"""
        pass
