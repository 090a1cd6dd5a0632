#!/usr/bin/env python3
"""
Snapshot builder

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
import subprocess
from typing import Dict, Iterable, List, Optional, Set

from ..package_managers.base import PackageManager
from ..utils.context import Confirmer, RunContext
from ..utils.log import log_success
from ..utils.progress import OperationType, ProgressTracker
from .backends import ElementBackend, create_backends
from .elements import (
    ElementKind, CaptureResult, REPOS_DIR, RELEASE_FILES_DIR, CONFIG_DIR, RPMS_DIR, PACKAGES_LIST
)
from .metadata import MetadataDescriptor
from .store import SnapshotRef, SnapshotStore

logger = logging.getLogger(__name__)

# Directories every snapshot starts with, even when their element is opted out
SKELETON_DIRS = (REPOS_DIR, RELEASE_FILES_DIR, CONFIG_DIR, RPMS_DIR)


class BuildReport:
    """What a build produced"""

    def __init__(self, snapshot: Optional[SnapshotRef] = None,
                 metadata: Optional[MetadataDescriptor] = None,
                 counts: Optional[Dict[ElementKind, int]] = None,
                 warnings: Optional[List[str]] = None,
                 dry_run: bool = False):
        self.snapshot = snapshot
        self.metadata = metadata
        self.counts = counts or {}
        self.warnings = warnings or []
        self.dry_run = dry_run

    @property
    def backed_up_elements(self) -> List[ElementKind]:
        return self.metadata.backed_up_elements if self.metadata else []


class SnapshotBuilder:
    """Captures the selected element kinds into a new snapshot"""

    def __init__(self, ctx: RunContext, store: SnapshotStore, package_manager: PackageManager,
                 backends: Optional[Dict[ElementKind, ElementBackend]] = None,
                 show_progress: Optional[bool] = None):
        self.ctx = ctx
        self.store = store
        self.package_manager = package_manager
        self.backends = backends or create_backends(ctx, package_manager)
        self.show_progress = show_progress

    def select_elements(self, confirmer: Optional[Confirmer] = None) -> Set[ElementKind]:
        """Ask once per element kind whether it should be captured"""
        confirmer = confirmer or self.ctx.confirmer
        selected = set()
        for kind in ElementKind:
            if confirmer.confirm(f"Back up {kind.description}?", default=True):
                selected.add(kind)
            else:
                logger.info(f"Skipping {kind.description}")
        return selected

    def build(self, inclusion: Optional[Iterable[ElementKind]] = None) -> BuildReport:
        """Create a snapshot holding the included element kinds

        Capture problems only produce warnings. Everything included is
        attempted, the descriptor is written last and the latest pointer is
        moved to the new snapshot.

        Args:
            inclusion: Element kinds to capture; None means all of them

        Raises:
            SnapshotCreateError: if the snapshot directory cannot be created
        """
        kinds = ElementKind.ordered(ElementKind if inclusion is None else inclusion)

        if self.ctx.dry_run:
            logger.warning(f"[DRY-RUN] Would create backup at {self.store.path_for(self.store.allocate_id())}")
            for kind in kinds:
                logger.warning(f"[DRY-RUN] Would back up {kind.description}")
            return BuildReport(dry_run=True)

        logger.info("Creating backup...")
        snapshot = self.store.create()
        for name in SKELETON_DIRS:
            os.makedirs(os.path.join(snapshot.path, name), exist_ok=True)

        counts: Dict[ElementKind, int] = {}
        warnings: List[str] = []

        with ProgressTracker(OperationType.BACKUP, total=len(kinds), desc="Backing up",
                             enabled=self.show_progress) as progress:
            for kind in kinds:
                result = self._capture(kind, snapshot.path)
                counts[kind] = result.count
                warnings.extend(result.warnings)
                progress.update(1, kind.value)

        logger.info("Creating backup metadata...")
        metadata = MetadataDescriptor(
            backup_timestamp=snapshot.id,
            identity=self.ctx.identity,
            backed_up_elements=kinds,
            package_count=self._installed_package_count(),
            release_rpm_count=self.backends[ElementKind.RELEASE_RPMS].payload_count(snapshot.path)
            if ElementKind.RELEASE_RPMS in kinds else 0,
        )
        metadata.write(snapshot.path)
        self.store.set_latest(snapshot.id)

        log_success(logger, f"Backup created at {snapshot.path}")
        report = BuildReport(snapshot, metadata, counts, warnings)
        self.print_summary(report)
        return report

    def _capture(self, kind: ElementKind, snapshot_dir: str) -> CaptureResult:
        try:
            return self.backends[kind].capture(snapshot_dir)
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            message = f"Backing up {kind.description} failed: {e}"
            logger.warning(message)
            return CaptureResult(0, [message])

    def _installed_package_count(self) -> int:
        try:
            return len(self.package_manager.query_installed())
        except (OSError, ValueError) as e:
            logger.warning(f"Could not count installed packages: {e}")
            return 0

    @staticmethod
    def print_summary(report: BuildReport) -> None:
        snapshot_dir = report.snapshot.path
        packages_list = os.path.join(snapshot_dir, PACKAGES_LIST)
        listed = 0
        if os.path.isfile(packages_list):
            with open(packages_list, 'r') as f:
                listed = sum(1 for line in f if line.strip())

        print("")
        print("Backup summary:")
        print(f"  Location: {snapshot_dir}")
        print(f"  Elements: {', '.join(kind.value for kind in report.backed_up_elements) or 'none'}")
        print(f"  Release RPMs: {report.metadata.release_rpm_count}")
        print(f"  Total packages: {listed or report.metadata.package_count}")
        if report.warnings:
            print(f"  Warnings: {len(report.warnings)}")
            for warning in report.warnings:
                print(f"    - {warning}")
        print("")
