#!/usr/bin/env python3
"""
DNF/YUM package manager implementation for Enterprise Linux systems

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
from typing import List, Optional

from .base import PackageManager

logger = logging.getLogger(__name__)


class DnfPackageManager(PackageManager):
    """Package manager for DNF or YUM (RHEL, Rocky, AlmaLinux, Oracle Linux, etc.)"""

    def __init__(self, name: Optional[str] = None):
        # Fall back to yum on EL7 hosts without dnf
        if name is None:
            name = 'dnf' if shutil.which('dnf') else 'yum'
        super().__init__(name)
        self.rpm_path = shutil.which('rpm') or '/usr/bin/rpm'

    def _check_available(self) -> bool:
        return shutil.which(self.name) is not None and shutil.which('rpm') is not None

    def query_installed(self, query_format: str = "%{NAME}\\n") -> List[str]:
        """List installed packages formatted with an rpm query format"""
        result = self._run_command([self.rpm_path, '-qa', '--queryformat', query_format])
        if result.returncode != 0:
            logger.warning(f"Could not query installed packages: {result.stderr.strip()}")
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]

    def is_installed(self, package_name: str) -> bool:
        result = self._run_command([self.rpm_path, '-q', package_name])
        return result.returncode == 0

    def query_info(self, package_name: str) -> str:
        result = self._run_command([self.rpm_path, '-qi', package_name])
        return result.stdout if result.returncode == 0 else ""

    def query_filename(self, package_name: str) -> Optional[str]:
        result = self._run_command([
            self.rpm_path, '-q', '--queryformat',
            '%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}.rpm\\n', package_name
        ])
        if result.returncode != 0 or not result.stdout.strip():
            return None
        return result.stdout.splitlines()[0].strip()

    def query_location(self, package_name: str) -> Optional[str]:
        """Resolve the download URL of a package with repoquery"""
        if shutil.which('repoquery'):
            cmd = ['repoquery', '--location', package_name]
        elif self.name == 'dnf':
            cmd = ['dnf', 'repoquery', '--location', package_name]
        else:
            return None

        result = self._run_command(cmd)
        if result.returncode != 0:
            return None
        for line in result.stdout.splitlines():
            line = line.strip()
            if line.startswith(('http://', 'https://', 'ftp://')):
                return line
        return None

    def install(self, package_names: List[str], allow_erasing: bool = False) -> bool:
        if not package_names:
            return True
        cmd = [self.name, 'install', '-y']
        if allow_erasing and self.name == 'dnf':
            cmd.append('--allowerasing')
        result = self._run_command(cmd + list(package_names))
        return result.returncode == 0

    def install_local(self, rpm_paths: List[str], force: bool = True, nodeps: bool = True) -> bool:
        if not rpm_paths:
            return True
        cmd = [self.rpm_path, '-Uvh']
        if force:
            cmd.append('--force')
        if nodeps:
            cmd.append('--nodeps')
        result = self._run_command(cmd + list(rpm_paths))
        return result.returncode == 0

    def remove(self, package_names: List[str], nodeps: bool = True) -> bool:
        if not package_names:
            return True
        cmd = [self.rpm_path, '-e']
        if nodeps:
            cmd.append('--nodeps')
        result = self._run_command(cmd + list(package_names))
        return result.returncode == 0

    def download(self, package_names: List[str], destdir: str) -> bool:
        """Download packages with dnf download, yumdownloader or yum --downloadonly"""
        if self.name == 'dnf':
            cmd = ['dnf', 'download', f'--destdir={destdir}']
        elif shutil.which('yumdownloader'):
            cmd = ['yumdownloader', f'--destdir={destdir}']
        else:
            cmd = ['yum', 'install', '--downloadonly', f'--downloaddir={destdir}', '-y']

        logger.info(f"Using {cmd[0]} to download RPMs...")
        result = self._run_command(cmd + list(package_names))
        return result.returncode == 0

    def clean_cache(self) -> bool:
        result = self._run_command([self.name, 'clean', 'all'])
        return result.returncode == 0

    def repolist(self) -> bool:
        result = self._run_command([self.name, 'repolist'], timeout=300)
        return result.returncode == 0

    def upgrade(self, package_names: List[str]) -> bool:
        result = self._run_command([self.name, '-y', 'upgrade'] + list(package_names))
        return result.returncode == 0

    def reinstall(self, package_names: List[str], excludes: Optional[List[str]] = None,
                  log_file: Optional[str] = None, obsoletes: bool = False) -> bool:
        cmd = [self.name]
        for exclude in excludes or []:
            cmd += ['-x', exclude]
        cmd += ['reinstall', '-y'] + list(package_names)
        if obsoletes:
            cmd.append('--obsoletes')

        result = self._run_command(cmd)
        if log_file:
            try:
                os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
                with open(log_file, 'a') as f:
                    f.write(result.stdout or "")
                    f.write(result.stderr or "")
            except (IOError, OSError) as e:
                logger.warning(f"Could not write reinstall log {log_file}: {e}")
        return result.returncode == 0
