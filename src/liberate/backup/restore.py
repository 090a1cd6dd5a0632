#!/usr/bin/env python3
"""
Restore orchestrator

Replays a snapshot onto the live system under one of the restore policies.
Whatever the policy, the active steps always run in the same order:

  1. remove target vendor release and branding packages
  2. restore repository files
  3. install the original release packages
  4. restore package manager configuration
  5. restore files deleted by the conversion
  6. remove the liberated marker

Vendor packages have to be gone before the original release package goes
in, repository files must describe the original vendor before anything is
installed from them, and the marker is cleared last so that an interrupted
restore still reports the system as migrated.

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
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from ..errors import OperationCancelled
from ..package_managers.base import PackageManager
from ..utils.context import RunContext
from ..utils.log import log_success
from ..utils.marker import LiberatedMarker
from ..utils.progress import OperationType, ProgressTracker
from ..utils.releases import TARGET_VENDOR_PACKAGES
from .backends import ElementBackend, ReleaseRpmsBackend, create_backends
from .elements import ElementKind, ReplayResult, PACKAGES_LIST
from .metadata import MetadataDescriptor
from .store import LATEST, SnapshotRef, SnapshotStore

logger = logging.getLogger(__name__)


class RestorePolicy(Enum):
    """Which parts of a snapshot a restore puts back"""
    FULL = "full"
    MINIMAL = "minimal"
    REPOS_ONLY = "repos-only"
    RELEASE_ONLY = "release-only"
    FILES_ONLY = "files-only"
    CONFIG_ONLY = "config-only"
    ROLLBACK = "rollback"
    SELECT = "select"


class RestoreStep(Enum):
    """Restore actions, declared in execution order"""
    REMOVE_VENDOR_PACKAGES = "remove-vendor-packages"
    REPOS = "repos"
    RELEASE_PACKAGES = "release-packages"
    CONFIG = "config"
    DELETED_FILES = "deleted-files"
    REMOVE_MARKER = "remove-marker"

    @property
    def description(self) -> str:
        return STEP_DESCRIPTIONS[self]

    @property
    def element(self) -> Optional[ElementKind]:
        """Element kind the step replays, None for steps that only remove"""
        return STEP_ELEMENTS.get(self)

    @classmethod
    def ordered(cls, steps: Iterable['RestoreStep']) -> List['RestoreStep']:
        steps = set(steps)
        return [step for step in cls if step in steps]


STEP_DESCRIPTIONS = {
    RestoreStep.REMOVE_VENDOR_PACKAGES: "Removing target vendor release packages",
    RestoreStep.REPOS: "Restoring repository configuration",
    RestoreStep.RELEASE_PACKAGES: "Installing original release packages",
    RestoreStep.CONFIG: "Restoring package manager configuration",
    RestoreStep.DELETED_FILES: "Restoring deleted files",
    RestoreStep.REMOVE_MARKER: "Removing liberated marker",
}

STEP_ELEMENTS = {
    RestoreStep.REPOS: ElementKind.REPOS,
    RestoreStep.RELEASE_PACKAGES: ElementKind.RELEASE_RPMS,
    RestoreStep.CONFIG: ElementKind.CONFIG,
    RestoreStep.DELETED_FILES: ElementKind.DELETED_FILES,
}

ALL_STEPS = frozenset(RestoreStep)

POLICY_STEPS = {
    RestorePolicy.FULL: ALL_STEPS,
    # Minimal still strips the target vendor identity
    RestorePolicy.MINIMAL: frozenset({
        RestoreStep.REMOVE_VENDOR_PACKAGES, RestoreStep.RELEASE_PACKAGES,
        RestoreStep.DELETED_FILES, RestoreStep.REMOVE_MARKER,
    }),
    RestorePolicy.REPOS_ONLY: frozenset({RestoreStep.REPOS}),
    RestorePolicy.RELEASE_ONLY: frozenset({RestoreStep.RELEASE_PACKAGES}),
    RestorePolicy.FILES_ONLY: frozenset({RestoreStep.DELETED_FILES}),
    RestorePolicy.CONFIG_ONLY: frozenset({RestoreStep.CONFIG}),
    RestorePolicy.ROLLBACK: frozenset({
        RestoreStep.REPOS, RestoreStep.CONFIG, RestoreStep.REMOVE_MARKER,
    }),
}

RELEASE_FROM_BACKUP = "backup"
RELEASE_FROM_REPOSITORIES = "repositories"


class RestoreInspection:
    """What a snapshot can provide and what the live system currently looks like"""

    def __init__(self, counts: Dict[ElementKind, int], release_payload_count: int,
                 release_listed: List[str], marker_present: bool, vendor_packages: List[str]):
        self.counts = counts
        self.release_payload_count = release_payload_count
        self.release_listed = release_listed
        self.marker_present = marker_present
        self.vendor_packages = vendor_packages

    def show(self) -> None:
        print("")
        print("Backup contents:")
        for kind in ElementKind:
            print(f"  {kind.description:<32} {self.counts.get(kind, 0)}")
        print(f"  {'release RPM payloads':<32} {self.release_payload_count}")
        print("")
        print("Current system:")
        print(f"  Liberated marker present: {'yes' if self.marker_present else 'no'}")
        print(f"  Target vendor packages: {' '.join(self.vendor_packages) or 'none'}")
        print("")


class RestoreReport:
    """Outcome of one restore run"""

    def __init__(self, snapshot: SnapshotRef, policy: RestorePolicy,
                 steps: Optional[List[RestoreStep]] = None, dry_run: bool = False):
        self.snapshot = snapshot
        self.policy = policy
        self.steps = steps or []
        self.results: Dict[RestoreStep, ReplayResult] = {}
        self.dry_run = dry_run
        self.manual_packages: List[str] = []

    @property
    def warnings(self) -> List[str]:
        warnings = []
        for step in self.steps:
            if step in self.results:
                warnings.extend(self.results[step].warnings)
        return warnings

    def succeeded(self, step: RestoreStep) -> bool:
        return step in self.results and self.results[step].succeeded


class RestoreOrchestrator:
    """Resolves a snapshot and replays the steps a policy asks for"""

    def __init__(self, ctx: RunContext, store: SnapshotStore, package_manager: PackageManager,
                 backends: Optional[Dict[ElementKind, ElementBackend]] = None,
                 show_progress: Optional[bool] = None):
        self.ctx = ctx
        self.store = store
        self.package_manager = package_manager
        self.backends = backends or create_backends(ctx, package_manager)
        self.marker = LiberatedMarker(ctx.paths.resolve(ctx.paths.marker))
        self.show_progress = show_progress

    @property
    def release_backend(self) -> ReleaseRpmsBackend:
        return self.backends[ElementKind.RELEASE_RPMS]

    def installed_vendor_packages(self) -> List[str]:
        return [name for name in TARGET_VENDOR_PACKAGES if self.package_manager.is_installed(name)]

    def inspect(self, snapshot: SnapshotRef, metadata: MetadataDescriptor) -> RestoreInspection:
        """Count what each element kind holds in the snapshot"""
        counts = {}
        for kind in ElementKind:
            if metadata.has_element(kind):
                counts[kind] = self.backends[kind].content_count(snapshot.path)
            else:
                counts[kind] = 0

        if metadata.has_element(ElementKind.RELEASE_RPMS):
            payload = self.release_backend.payload_count(snapshot.path)
            listed = self.release_backend.listed_packages(snapshot.path)
        else:
            payload, listed = 0, []

        return RestoreInspection(counts, payload, listed, self.marker.exists(),
                                 self.installed_vendor_packages())

    def select_steps(self, inspection: RestoreInspection) -> Dict[RestoreStep, Optional[str]]:
        """Ask about each step the snapshot and system can satisfy

        Elements with nothing captured are never offered. Returns the chosen
        steps; the release step maps to where packages are installed from.
        """
        chosen: Dict[RestoreStep, Optional[str]] = {}
        confirm = self.ctx.confirm

        if inspection.vendor_packages and confirm(
                f"Remove target vendor packages ({' '.join(inspection.vendor_packages)})?", default=True):
            chosen[RestoreStep.REMOVE_VENDOR_PACKAGES] = None

        if inspection.counts[ElementKind.REPOS] and confirm(
                f"Restore {inspection.counts[ElementKind.REPOS]} repository file(s)?", default=True):
            chosen[RestoreStep.REPOS] = None

        if inspection.release_payload_count:
            if confirm(f"Install original release packages from {inspection.release_payload_count} "
                       f"backed up RPM(s)?", default=True):
                chosen[RestoreStep.RELEASE_PACKAGES] = RELEASE_FROM_BACKUP
        elif inspection.release_listed:
            if confirm(f"Backup holds no RPMs. Install original release packages from repositories "
                       f"({' '.join(inspection.release_listed)})?", default=True):
                chosen[RestoreStep.RELEASE_PACKAGES] = RELEASE_FROM_REPOSITORIES

        if inspection.counts[ElementKind.CONFIG] and confirm(
                "Restore package manager configuration?", default=True):
            chosen[RestoreStep.CONFIG] = None

        if inspection.counts[ElementKind.DELETED_FILES] and confirm(
                f"Restore {inspection.counts[ElementKind.DELETED_FILES]} deleted file(s)?", default=True):
            chosen[RestoreStep.DELETED_FILES] = None

        if inspection.marker_present and confirm("Remove the liberated marker?", default=True):
            chosen[RestoreStep.REMOVE_MARKER] = None

        return chosen

    def restore(self, name: str = LATEST, policy: RestorePolicy = RestorePolicy.FULL) -> RestoreReport:
        """Restore a snapshot under a policy

        Raises:
            LatestUndefinedError: no latest pointer when ``name`` is latest
            BackupNotFoundError: no snapshot with that id
            InvalidSnapshotError: the snapshot has no readable descriptor
            OperationCancelled: the confirmation was declined
        """
        snapshot = self.store.resolve(name)
        metadata = snapshot.read_metadata()
        original = str(metadata.identity) or "unknown"

        logger.info(f"Restoring from backup: {snapshot.path} ({policy.value})")
        print("")
        print("Restore Information:")
        print(f"  Backup: {snapshot.id}")
        print(f"  Original OS: {original}")
        print(f"  Policy: {policy.value}")
        print("")

        release_source: Optional[str] = None
        if policy is RestorePolicy.SELECT:
            inspection = self.inspect(snapshot, metadata)
            inspection.show()
            chosen = self.select_steps(inspection)
            steps = RestoreStep.ordered(chosen)
            release_source = chosen.get(RestoreStep.RELEASE_PACKAGES)
            if not steps:
                logger.warning("Nothing selected to restore")
                return RestoreReport(snapshot, policy, [], self.ctx.dry_run)
        else:
            steps = RestoreStep.ordered(POLICY_STEPS[policy])

        print("This will:")
        for step in steps:
            print(f"  - {step.description.lower()}")
        print("")

        if self.ctx.dry_run:
            for step in steps:
                logger.warning(f"[DRY-RUN] Would run: {step.description.lower()}")
            return RestoreReport(snapshot, policy, steps, dry_run=True)

        if policy is not RestorePolicy.SELECT and not self.ctx.confirm(
                f"Restore system to {original} ({policy.value})?"):
            logger.info("Restore cancelled by user")
            raise OperationCancelled("Restore cancelled by user")

        report = RestoreReport(snapshot, policy, steps)
        with ProgressTracker(OperationType.RESTORE, total=len(steps), desc="Restoring",
                             enabled=self.show_progress) as progress:
            for index, step in enumerate(steps, 1):
                logger.info(f"Step {index}/{len(steps)}: {step.description}...")
                report.results[step] = self._run_step(step, snapshot, metadata, release_source)
                progress.update(1, step.value)

        if RestoreStep.RELEASE_PACKAGES in steps and not report.succeeded(RestoreStep.RELEASE_PACKAGES):
            report.manual_packages = self.release_backend.listed_packages(snapshot.path)

        if RestoreStep.REMOVE_VENDOR_PACKAGES in steps:
            logger.info("Cleaning package manager cache...")
            self.package_manager.clean_cache()

        self.print_summary(report)
        return report

    def _run_step(self, step: RestoreStep, snapshot: SnapshotRef, metadata: MetadataDescriptor,
                  release_source: Optional[str]) -> ReplayResult:
        kind = step.element
        if kind is not None and not metadata.has_element(kind):
            message = f"Nothing to restore: {kind.description} not included in backup {snapshot.id}"
            logger.warning(message)
            return ReplayResult(0, [message])

        try:
            if step is RestoreStep.REMOVE_VENDOR_PACKAGES:
                return self._remove_vendor_packages()
            if step is RestoreStep.REMOVE_MARKER:
                return self._remove_marker()
            if step is RestoreStep.RELEASE_PACKAGES and release_source == RELEASE_FROM_BACKUP:
                return self.release_backend.replay_payload(snapshot.path)
            if step is RestoreStep.RELEASE_PACKAGES and release_source == RELEASE_FROM_REPOSITORIES:
                return self.release_backend.replay_from_repositories(snapshot.path)
            return self.backends[kind].replay(snapshot.path)
        except (IOError, OSError) as e:
            message = f"{step.description} failed: {e}"
            logger.warning(message)
            return ReplayResult(0, [message], succeeded=False)

    def _remove_vendor_packages(self) -> ReplayResult:
        warnings = []
        removed = 0
        for name in self.installed_vendor_packages():
            logger.info(f"Removing {name}...")
            if self.package_manager.remove([name], nodeps=True):
                removed += 1
            else:
                message = f"Failed to remove {name}"
                logger.warning(message)
                warnings.append(message)
        return ReplayResult(removed, warnings, succeeded=not warnings)

    def _remove_marker(self) -> ReplayResult:
        if self.marker.remove():
            return ReplayResult(1)
        return ReplayResult(0)

    @staticmethod
    def print_summary(report: RestoreReport) -> None:
        print("")
        log_success(logger, f"Restore ({report.policy.value}) completed!")
        print("")
        print("Summary:")
        for step in report.steps:
            result = report.results.get(step)
            if result is None:
                status = "skipped"
            elif not result.succeeded:
                status = "FAILED"
            else:
                status = f"done ({result.count})"
            print(f"  - {step.description}: {status}")

        if report.manual_packages:
            print("")
            print("Original release packages: MANUAL INSTALLATION REQUIRED")
            print("Packages to install manually:")
            for name in report.manual_packages:
                print(f"  {name}")

        if report.warnings:
            print("")
            print(f"Warnings ({len(report.warnings)}):")
            for warning in report.warnings:
                print(f"  - {warning}")

        if report.policy is RestorePolicy.ROLLBACK:
            logger.warning("Repository files restored. To complete rollback:")
            logger.warning("1. Ensure original distribution repos are configured")
            logger.warning("2. Remove target vendor release packages")
            logger.warning("3. Install original release packages")
            logger.warning(f"Package list available at: {os.path.join(report.snapshot.path, PACKAGES_LIST)}")
        elif RestoreStep.REMOVE_VENDOR_PACKAGES in report.steps:
            print("")
            print("A system reboot is recommended to complete the restore.")
        print("")
