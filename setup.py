#!/usr/bin/env python3
"""
Setup script for Liberate

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

from setuptools import setup, find_namespace_packages
import os
import re


def read_version():
    """Read __version__ from the package without importing it"""
    init_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src', 'liberate', '__init__.py')
    with open(init_file, 'r') as f:
        match = re.search(r'^__version__\s*=\s*["\']([^"\']+)["\']', f.read(), re.M)
    return match.group(1) if match else "0.0.0"


setup(
    name="liberate",
    version=read_version(),
    description="Convert Enterprise Linux hosts to SUSE Liberty Linux with backup and restore",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src"),
    entry_points={
        "console_scripts": [
            "liberate=liberate.__main__:main",
        ],
    },
    install_requires=[
        "distro>=1.5.0",  # For distribution detection
        "requests>=2.25.0",  # For fetching release RPMs by URL
        "setuptools>=42.0.0",
        "tqdm>=4.60.0",   # For progress bars
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    # tarfile extraction filters are needed for importing archives
    python_requires=">=3.11.4",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: GNU Affero General Public License v3",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Systems Administration",
    ],
)
