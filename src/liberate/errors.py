#!/usr/bin/env python3
"""
Exception types for Liberate

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

from typing import Optional


class LiberateError(Exception):
    """Base exception for fatal Liberate errors.

    Anything deriving from this class aborts the current command before any
    further change is made to the system.
    """

    def __init__(self, message: str, remediation: Optional[str] = None,
                 details: Optional[str] = None):
        """Initialize the error.

        Args:
            message: Human-readable error message
            remediation: Suggested fix for the user
            details: Technical details for debugging
        """
        super().__init__(message)
        self.message = message
        self.remediation = remediation
        self.details = details

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.remediation:
            parts.append(f"To fix: {self.remediation}")
        return "\n".join(parts)


class BackupNotFoundError(LiberateError):
    """A named snapshot does not exist in the store"""

    def __init__(self, name: str, backup_dir: str):
        self.name = name
        self.backup_dir = backup_dir
        super().__init__(
            f"Backup not found: {name}",
            remediation=f"Use 'liberate list-backups' to see the backups in {backup_dir}",
        )


class LatestUndefinedError(LiberateError):
    """The store has no latest pointer to resolve"""

    def __init__(self, backup_dir: str):
        self.backup_dir = backup_dir
        super().__init__(
            "No latest backup found",
            remediation="Create a backup first or import one with 'liberate import-backup'",
        )


class InvalidSnapshotError(LiberateError):
    """A snapshot directory exists but cannot be used"""


class SnapshotCreateError(LiberateError):
    """The directory for a new snapshot could not be created"""


class SnapshotExistsError(LiberateError):
    """An imported snapshot would replace one already in the store"""


class ArchiveNotFoundError(LiberateError):
    """The archive given for import does not exist"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Archive file not found: {path}")


class InvalidArchiveError(LiberateError):
    """The archive is not a single, well-formed snapshot"""


class UnsupportedSystemError(LiberateError):
    """The running distribution or version cannot be converted"""


class PrerequisiteError(LiberateError):
    """The host does not satisfy the conversion prerequisites"""


class PackageManagerError(LiberateError):
    """No usable package manager was found"""


class OperationCancelled(Exception):
    """The user declined a confirmation.

    This is a clean outcome rather than a failure: commands exit with status 0.
    """
