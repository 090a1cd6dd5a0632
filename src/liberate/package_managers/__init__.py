"""
Package managers module for Liberate.

This module provides the package manager capability used by backup,
restore and conversion.
"""

from .base import PackageManager
from .dnf import DnfPackageManager
from .factory import PackageManagerFactory

__all__ = [
    'PackageManager',
    'DnfPackageManager',
    'PackageManagerFactory',
]
