#!/usr/bin/env python3
"""
Package manager factory implementation
"""

import logging

from ..errors import PackageManagerError
from .base import PackageManager
from .dnf import DnfPackageManager

logger = logging.getLogger(__name__)


class PackageManagerFactory:
    """Factory for creating the package manager of the running system"""

    @staticmethod
    def create_for_system() -> PackageManager:
        """Create the available RPM package manager

        Raises:
            PackageManagerError: when neither dnf nor yum (with rpm) is installed
        """
        manager = DnfPackageManager()
        if not manager.available:
            raise PackageManagerError(
                "Missing required commands: rpm and dnf or yum",
                remediation="Run Liberate on an RPM based Enterprise Linux host",
            )
        logger.info(f"Package manager available: {manager.name}")
        return manager
