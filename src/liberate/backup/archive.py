#!/usr/bin/env python3
"""
Portable snapshot archives

A snapshot travels between hosts as a gzip compressed tarball holding the
snapshot directory as its single top-level entry.

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
import tarfile
import tempfile
import logging
from typing import Optional

from ..errors import ArchiveNotFoundError, InvalidArchiveError, SnapshotExistsError
from ..utils.log import log_success
from ..utils.progress import OperationType, ProgressTracker
from .elements import METADATA_FILE
from .store import ID_PATTERN, LATEST, SnapshotRef, SnapshotStore

logger = logging.getLogger(__name__)


def human_size(size: int) -> str:
    if size > 1024 * 1024:
        return f"{size / 1024 / 1024:.1f}MB"
    return f"{size / 1024:.1f}KB"


class SnapshotArchiver:
    """Exports snapshots to archives and imports them back into a store"""

    def __init__(self, store: SnapshotStore, prefix: str = "liberate-backup",
                 dry_run: bool = False, show_progress: Optional[bool] = None):
        self.store = store
        self.prefix = prefix
        self.dry_run = dry_run
        self.show_progress = show_progress

    def archive_name(self, snapshot_id: str) -> str:
        return f"{self.prefix}-{snapshot_id}.tar.gz"

    def export(self, name: str = LATEST, output_file: Optional[str] = None) -> str:
        """Write a snapshot to a .tar.gz archive

        Args:
            name: Snapshot id or ``latest``
            output_file: Archive path; defaults to <prefix>-<id>.tar.gz in the current directory

        Returns:
            Path of the archive
        """
        snapshot = self.store.resolve(name)
        output_file = output_file or self.archive_name(snapshot.id)

        logger.info(f"Exporting backup {snapshot.id} to {output_file}...")
        if self.dry_run:
            logger.warning(f"[DRY-RUN] Would create archive {output_file}")
            return output_file

        parent = os.path.dirname(os.path.abspath(output_file))
        os.makedirs(parent, exist_ok=True)

        with ProgressTracker(OperationType.EXPORT, total=1, desc="Exporting",
                             enabled=self.show_progress) as progress:
            with tarfile.open(output_file, "w:gz") as tar:
                tar.add(snapshot.path, arcname=snapshot.id)
            progress.update(1, snapshot.id)

        log_success(logger, f"Backup exported to: {output_file} ({human_size(os.path.getsize(output_file))})")
        print("")
        print("To restore on another system:")
        print(f"  1. Copy {output_file} to the target system")
        print(f"  2. Run: liberate import-backup {os.path.basename(output_file)}")
        print("  3. Run: liberate restore")
        print("")
        return output_file

    @staticmethod
    def _snapshot_id_from(tar: tarfile.TarFile, archive_file: str) -> str:
        """Derive the snapshot id from the archive's single top-level directory"""
        top_level = set()
        names = set()
        for member in tar.getmembers():
            name = member.name
            while name.startswith("./"):
                name = name[2:]
            if not name or name == ".":
                continue
            if os.path.isabs(name) or ".." in name.split("/"):
                raise InvalidArchiveError(f"Unsafe path in archive {archive_file}: {member.name}")
            top_level.add(name.split("/", 1)[0])
            names.add(name.rstrip("/"))

        if len(top_level) != 1:
            raise InvalidArchiveError(
                f"Archive {archive_file} must contain exactly one backup directory",
                details=f"Top-level entries: {', '.join(sorted(top_level)) or 'none'}",
            )

        snapshot_id = top_level.pop()
        if not ID_PATTERN.match(snapshot_id):
            raise InvalidArchiveError(f"Archive {archive_file} does not hold a backup directory: {snapshot_id}")
        if f"{snapshot_id}/{METADATA_FILE}" not in names:
            raise InvalidArchiveError(f"Archive {archive_file} has no {METADATA_FILE}",
                                      remediation="Export the backup again from the source system")
        return snapshot_id

    def import_archive(self, archive_file: str) -> Optional[SnapshotRef]:
        """Extract an exported archive into the store and make it the latest

        Raises:
            ArchiveNotFoundError: the archive does not exist
            InvalidArchiveError: the archive is unreadable or not a single snapshot
            SnapshotExistsError: a snapshot with the same id is already stored
        """
        if not os.path.isfile(archive_file):
            raise ArchiveNotFoundError(archive_file)

        logger.info(f"Importing backup from {archive_file}...")
        try:
            with tarfile.open(archive_file, "r:gz") as tar:
                snapshot_id = self._snapshot_id_from(tar, archive_file)

                if self.dry_run:
                    logger.warning(f"[DRY-RUN] Would import backup {snapshot_id} from {archive_file}")
                    return None

                if self.store.exists(snapshot_id):
                    raise SnapshotExistsError(
                        f"Backup {snapshot_id} already exists in {self.store.root}",
                        remediation=f"Delete it first with 'liberate delete-backup {snapshot_id}'",
                    )

                os.makedirs(self.store.root, exist_ok=True)
                staging = tempfile.mkdtemp(prefix=".import-", dir=self.store.root)
                try:
                    with ProgressTracker(OperationType.IMPORT, total=1, desc="Importing",
                                         enabled=self.show_progress) as progress:
                        tar.extractall(path=staging, filter="tar")
                        progress.update(1, snapshot_id)
                    snapshot = self.store.adopt(os.path.join(staging, snapshot_id), snapshot_id)
                finally:
                    shutil.rmtree(staging, ignore_errors=True)
        except (tarfile.TarError, EOFError, OSError) as e:
            raise InvalidArchiveError(f"Failed to extract archive {archive_file}", details=str(e))

        self.store.set_latest(snapshot.id)
        log_success(logger, f"Backup imported: {snapshot.id}")
        print("")
        print("To restore this backup, run:")
        print("  liberate restore")
        print("")
        return snapshot
