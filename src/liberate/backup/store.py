#!/usr/bin/env python3
"""
Snapshot store

Owns the backup root: snapshot id allocation, the latest pointer, name
resolution, listing and retention.

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
import re
import shutil
import datetime
import logging
from typing import Callable, List, Optional, Tuple

from ..errors import (
    LiberateError, BackupNotFoundError, LatestUndefinedError, SnapshotCreateError, SnapshotExistsError
)
from .elements import METADATA_FILE, RPMS_DIR
from .metadata import MetadataDescriptor

logger = logging.getLogger(__name__)

LATEST = "latest"
ID_FORMAT = "%Y%m%d_%H%M%S"
ID_PATTERN = re.compile(r'^(\d{8}_\d{6})(?:_(\d+))?$')


def id_sort_key(snapshot_id: str) -> Tuple[str, int]:
    """Order snapshot ids by creation time, then by collision suffix"""
    match = ID_PATTERN.match(snapshot_id)
    if not match:
        return (snapshot_id, 0)
    return (match.group(1), int(match.group(2) or 0))


class SnapshotRef:
    """A resolved snapshot directory"""

    def __init__(self, id: str, path: str):
        self.id = id
        self.path = path

    def read_metadata(self) -> MetadataDescriptor:
        return MetadataDescriptor.read(self.path)

    def __eq__(self, other) -> bool:
        return isinstance(other, SnapshotRef) and (self.id, self.path) == (other.id, other.path)

    def __repr__(self) -> str:
        return f"SnapshotRef({self.id!r}, {self.path!r})"


class SnapshotSummary:
    """One line of the backup listing"""

    def __init__(self, id: str, os_info: str, has_rpms: bool,
                 metadata: Optional[MetadataDescriptor] = None):
        self.id = id
        self.os_info = os_info
        self.has_rpms = has_rpms
        self.metadata = metadata

    def format(self) -> str:
        return f"  {self.id:<20} | OS: {self.os_info:<25} | RPMs: {'Yes' if self.has_rpms else 'No'}"


class SnapshotStore:
    """Directory of snapshots plus the ``latest`` pointer"""

    def __init__(self, root: str):
        self.root = root

    @property
    def latest_path(self) -> str:
        return os.path.join(self.root, LATEST)

    def path_for(self, snapshot_id: str) -> str:
        return os.path.join(self.root, snapshot_id)

    def allocate_id(self, now: Optional[datetime.datetime] = None) -> str:
        """Next free snapshot id for the given time

        Builds within the same second get ``_1``, ``_2``... appended.
        """
        base = (now or datetime.datetime.now()).strftime(ID_FORMAT)
        candidate = base
        suffix = 0
        while os.path.lexists(self.path_for(candidate)):
            suffix += 1
            candidate = f"{base}_{suffix}"
        return candidate

    def create(self, now: Optional[datetime.datetime] = None) -> SnapshotRef:
        """Allocate an id and create its directory

        Raises:
            SnapshotCreateError: if the directory cannot be created
        """
        try:
            os.makedirs(self.root, exist_ok=True)
        except OSError as e:
            raise SnapshotCreateError(f"Cannot create backup directory {self.root}", details=str(e))

        # mkdir fails if another build grabbed the same id first
        for _ in range(100):
            snapshot_id = self.allocate_id(now)
            path = self.path_for(snapshot_id)
            try:
                os.mkdir(path, 0o700)
            except FileExistsError:
                continue
            except OSError as e:
                raise SnapshotCreateError(f"Cannot create backup directory {path}", details=str(e),
                                          remediation="Check free space and permissions of the backup directory")
            logger.debug(f"Created snapshot directory {path}")
            return SnapshotRef(snapshot_id, path)

        raise SnapshotCreateError(f"Could not allocate a unique backup id in {self.root}")

    def exists(self, snapshot_id: str) -> bool:
        return (snapshot_id not in ("", ".", "..", LATEST) and "/" not in snapshot_id
                and os.path.isdir(self.path_for(snapshot_id)))

    def set_latest(self, snapshot_id: str) -> None:
        """Point ``latest`` at a snapshot, replacing any previous pointer atomically"""
        tmp_link = os.path.join(self.root, f".{LATEST}.tmp")
        if os.path.lexists(tmp_link):
            os.remove(tmp_link)
        os.symlink(snapshot_id, tmp_link)
        os.replace(tmp_link, self.latest_path)
        logger.debug(f"Latest backup is now {snapshot_id}")

    def latest_id(self) -> Optional[str]:
        """Snapshot id the latest pointer refers to, None if absent or dangling"""
        if not os.path.islink(self.latest_path):
            return None
        target = os.path.realpath(self.latest_path)
        if not os.path.isdir(target):
            return None
        return os.path.basename(target)

    def resolve(self, name: str = LATEST, show_listing: bool = True) -> SnapshotRef:
        """Turn ``latest`` or a snapshot id into a snapshot reference

        Both failures print the listing of available snapshots before the
        error propagates.

        Raises:
            LatestUndefinedError: for ``latest`` when no pointer exists
            BackupNotFoundError: for an id with no snapshot directory
        """
        name = name or LATEST
        if name == LATEST:
            snapshot_id = self.latest_id()
            if snapshot_id is None:
                logger.error("No latest backup found")
                if show_listing:
                    self.print_listing()
                raise LatestUndefinedError(self.root)
            return SnapshotRef(snapshot_id, self.path_for(snapshot_id))

        if not self.exists(name):
            logger.error(f"Backup not found: {name}")
            if show_listing:
                self.print_listing()
            raise BackupNotFoundError(name, self.root)
        return SnapshotRef(name, self.path_for(name))

    def snapshot_ids(self) -> List[str]:
        """Ids of every snapshot directory, oldest first"""
        if not os.path.isdir(self.root):
            return []
        ids = [name for name in os.listdir(self.root)
               if ID_PATTERN.match(name) and os.path.isdir(self.path_for(name))
               and not os.path.islink(self.path_for(name))]
        return sorted(ids, key=id_sort_key)

    def list(self) -> List[SnapshotSummary]:
        """Summaries of every snapshot with a descriptor, newest first"""
        summaries = []
        for snapshot_id in reversed(self.snapshot_ids()):
            path = self.path_for(snapshot_id)
            if not os.path.isfile(os.path.join(path, METADATA_FILE)):
                continue
            try:
                metadata = MetadataDescriptor.read(path)
                os_info = f"{metadata.identity.name} {metadata.identity.version}"
            except LiberateError as e:
                logger.warning(f"Unreadable metadata in backup {snapshot_id}: {e}")
                metadata = None
                os_info = "unknown"

            rpm_dir = os.path.join(path, RPMS_DIR)
            has_rpms = os.path.isdir(rpm_dir) and any(name.endswith('.rpm') for name in os.listdir(rpm_dir))
            summaries.append(SnapshotSummary(snapshot_id, os_info, has_rpms, metadata))
        return summaries

    def print_listing(self, output: Callable[[str], None] = print) -> int:
        """Print the backup listing; returns the number of valid backups"""
        output("")
        output(f"Available backups in {self.root}:")
        output("")

        summaries = self.list()
        if not summaries:
            output("No valid backups found.")
            output("")
            return 0

        for summary in summaries:
            output(summary.format())

        output("")
        output(f"Total: {len(summaries)} backup(s)")
        latest = self.latest_id()
        if latest:
            output(f"Latest: {latest}")
        output("")
        return len(summaries)

    def _remove(self, snapshot_id: str) -> None:
        latest = self.latest_id()
        shutil.rmtree(self.path_for(snapshot_id))
        if latest == snapshot_id or (os.path.islink(self.latest_path) and self.latest_id() is None):
            os.remove(self.latest_path)
            logger.info("Removed latest pointer to a deleted backup")

    def prune(self, keep: int, dry_run: bool = False) -> List[str]:
        """Delete the oldest snapshots so that at most ``keep`` remain

        Returns:
            Ids of the snapshots removed, oldest first
        """
        keep = max(int(keep), 0)
        ids = self.snapshot_ids()
        if len(ids) <= keep:
            logger.debug(f"No cleanup needed ({len(ids)} backups, keeping {keep})")
            return []

        doomed = ids[:len(ids) - keep]
        logger.info(f"Cleaning up old backups (keeping last {keep})...")
        for snapshot_id in doomed:
            if dry_run:
                logger.warning(f"[DRY-RUN] Would remove old backup {snapshot_id}")
                continue
            self._remove(snapshot_id)
            logger.info(f"Removed old backup: {snapshot_id}")
        return doomed

    def delete(self, name: str, dry_run: bool = False) -> SnapshotRef:
        """Delete one snapshot by id or ``latest``"""
        ref = self.resolve(name)
        if dry_run:
            logger.warning(f"[DRY-RUN] Would delete backup {ref.id}")
            return ref
        self._remove(ref.id)
        logger.info(f"Deleted backup {ref.id}")
        return ref

    def adopt(self, staged_dir: str, snapshot_id: str) -> SnapshotRef:
        """Move an extracted snapshot directory into the store under its id

        Raises:
            SnapshotExistsError: if a snapshot with that id is already present
        """
        target = self.path_for(snapshot_id)
        if os.path.lexists(target):
            raise SnapshotExistsError(
                f"Backup {snapshot_id} already exists in {self.root}",
                remediation=f"Delete it first with 'liberate delete-backup {snapshot_id}'",
            )
        os.rename(staged_dir, target)
        return SnapshotRef(snapshot_id, target)
