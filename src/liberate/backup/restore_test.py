#!/usr/bin/env python3
"""
Tests for the restore orchestrator
"""

import os
import random
import tempfile
import unittest
from unittest import mock

from liberate.backup.backends import ReleaseRpmsBackend
from liberate.backup.elements import ElementKind, ReplayResult
from liberate.backup.metadata import MetadataDescriptor
from liberate.backup.restore import RestoreOrchestrator, RestorePolicy, RestoreStep
from liberate.backup.store import SnapshotStore
from liberate.errors import BackupNotFoundError, OperationCancelled
from liberate.package_managers.dnf import DnfPackageManager
from liberate.utils.context import RunContext, SystemPaths
from liberate.utils.distro import DistroInfo

# Mock call names that mutate the system, mapped to the step issuing them
MUTATING_CALLS = {
    'pm.remove': RestoreStep.REMOVE_VENDOR_PACKAGES,
    'repos.replay': RestoreStep.REPOS,
    'release_rpms.replay': RestoreStep.RELEASE_PACKAGES,
    'release_rpms.replay_payload': RestoreStep.RELEASE_PACKAGES,
    'release_rpms.replay_from_repositories': RestoreStep.RELEASE_PACKAGES,
    'config.replay': RestoreStep.CONFIG,
    'deleted_files.replay': RestoreStep.DELETED_FILES,
    'marker.remove': RestoreStep.REMOVE_MARKER,
}


class Answers:
    """Confirmer answering from a callable"""

    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def confirm(self, prompt, default=False):
        self.prompts.append(prompt)
        return self.answer(prompt)


class RestoreTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = os.path.join(self.temp_dir.name, "root")
        os.makedirs(self.root)
        self.store = SnapshotStore(os.path.join(self.temp_dir.name, "backups"))
        self.identity = DistroInfo("rocky", "Rocky Linux", "9.3")

        self.print_patcher = mock.patch('builtins.print')
        self.print_patcher.start()

    def tearDown(self):
        self.print_patcher.stop()
        self.temp_dir.cleanup()

    def make_snapshot(self, elements=None):
        snapshot = self.store.create()
        MetadataDescriptor(snapshot.id, self.identity,
                           list(ElementKind) if elements is None else elements).write(snapshot.path)
        self.store.set_latest(snapshot.id)
        return snapshot

    def make_context(self, answer=lambda prompt: True, dry_run=False):
        self.confirmer = Answers(answer)
        return RunContext(identity=self.identity, paths=SystemPaths(root=self.root),
                          dry_run=dry_run, confirmer=self.confirmer)


class TestRestoreOrdering(RestoreTestCase):
    """Steps always run in the fixed order, whatever subset is chosen"""

    def setUp(self):
        super().setUp()
        self.tracker = mock.MagicMock()

        self.pm = mock.MagicMock(spec=DnfPackageManager)
        self.pm.is_installed.side_effect = lambda name: name in ("sll-release", "sll-logos")
        self.pm.remove.return_value = True
        self.tracker.attach_mock(self.pm, 'pm')

        self.backends = {}
        for kind in ElementKind:
            backend = mock.MagicMock(spec=ReleaseRpmsBackend if kind is ElementKind.RELEASE_RPMS else None)
            backend.content_count.return_value = 3
            backend.replay.return_value = ReplayResult(3)
            self.tracker.attach_mock(backend, kind.value)
            self.backends[kind] = backend

        release = self.backends[ElementKind.RELEASE_RPMS]
        release.payload_count.return_value = 2
        release.listed_packages.return_value = ["rocky-release", "rocky-repos"]
        release.replay_payload.return_value = ReplayResult(2)
        release.replay_from_repositories.return_value = ReplayResult(2)

    def make_orchestrator(self, ctx):
        orchestrator = RestoreOrchestrator(ctx, self.store, self.pm, self.backends, show_progress=False)
        marker = mock.MagicMock()
        marker.exists.return_value = True
        marker.remove.return_value = True
        self.tracker.attach_mock(marker, 'marker')
        orchestrator.marker = marker
        return orchestrator

    def executed_steps(self):
        steps = []
        for call in self.tracker.mock_calls:
            step = MUTATING_CALLS.get(call[0])
            if step is not None and step not in steps:
                steps.append(step)
        return steps

    def test_full_restore_order(self):
        self.make_snapshot()
        orchestrator = self.make_orchestrator(self.make_context())

        report = orchestrator.restore("latest", RestorePolicy.FULL)

        self.assertEqual(self.executed_steps(), list(RestoreStep))
        self.assertEqual(report.steps, list(RestoreStep))
        self.pm.remove.assert_has_calls([mock.call(["sll-release"], nodeps=True),
                                         mock.call(["sll-logos"], nodeps=True)])
        self.pm.clean_cache.assert_called_once_with()

    def test_random_selection_keeps_order(self):
        self.make_snapshot()
        canonical = list(RestoreStep)

        for seed in range(25):
            self.tracker.reset_mock()
            rng = random.Random(seed)
            orchestrator = self.make_orchestrator(self.make_context(lambda prompt: rng.random() < 0.5))

            report = orchestrator.restore("latest", RestorePolicy.SELECT)

            executed = self.executed_steps()
            self.assertEqual(executed, report.steps)
            self.assertEqual(executed, [step for step in canonical if step in executed])
            if RestoreStep.RELEASE_PACKAGES in executed:
                self.backends[ElementKind.RELEASE_RPMS].replay_payload.assert_called_once()

    def test_minimal_restore(self):
        self.make_snapshot()
        orchestrator = self.make_orchestrator(self.make_context())

        orchestrator.restore("latest", RestorePolicy.MINIMAL)

        self.assertEqual(self.executed_steps(), [
            RestoreStep.REMOVE_VENDOR_PACKAGES, RestoreStep.RELEASE_PACKAGES,
            RestoreStep.DELETED_FILES, RestoreStep.REMOVE_MARKER,
        ])
        self.backends[ElementKind.REPOS].replay.assert_not_called()

    def test_rollback_restore(self):
        self.make_snapshot()
        orchestrator = self.make_orchestrator(self.make_context())

        with self.assertLogs('liberate.backup.restore', level='WARNING') as logs:
            orchestrator.restore("latest", RestorePolicy.ROLLBACK)

        self.assertEqual(self.executed_steps(), [
            RestoreStep.REPOS, RestoreStep.CONFIG, RestoreStep.REMOVE_MARKER,
        ])
        self.pm.remove.assert_not_called()
        self.assertTrue(any("packages.list" in line for line in logs.output))

    def test_select_offers_repository_install(self):
        """Without RPM payloads the listed release packages come from repositories"""
        self.make_snapshot()
        release = self.backends[ElementKind.RELEASE_RPMS]
        release.payload_count.return_value = 0
        orchestrator = self.make_orchestrator(
            self.make_context(lambda prompt: "release packages" in prompt))

        report = orchestrator.restore("latest", RestorePolicy.SELECT)

        self.assertEqual(report.steps, [RestoreStep.RELEASE_PACKAGES])
        release.replay_from_repositories.assert_called_once()
        release.replay_payload.assert_not_called()
        self.assertTrue(any("rocky-release rocky-repos" in p for p in self.confirmer.prompts))

    def test_select_skips_empty_elements(self):
        self.make_snapshot()
        for backend in self.backends.values():
            backend.content_count.return_value = 0
        release = self.backends[ElementKind.RELEASE_RPMS]
        release.payload_count.return_value = 0
        release.listed_packages.return_value = []
        self.pm.is_installed.side_effect = None
        self.pm.is_installed.return_value = False
        orchestrator = self.make_orchestrator(self.make_context())
        orchestrator.marker.exists.return_value = False

        with self.assertLogs('liberate.backup.restore', level='WARNING') as logs:
            report = orchestrator.restore("latest", RestorePolicy.SELECT)

        self.assertEqual(report.steps, [])
        self.assertEqual(self.confirmer.prompts, [])
        self.assertIn("Nothing selected to restore", logs.output[-1])

    def test_nothing_to_restore(self):
        self.make_snapshot([ElementKind.PACKAGES])
        orchestrator = self.make_orchestrator(self.make_context())

        report = orchestrator.restore("latest", RestorePolicy.REPOS_ONLY)

        self.backends[ElementKind.REPOS].replay.assert_not_called()
        self.assertEqual(len(report.warnings), 1)
        self.assertIn("Nothing to restore", report.warnings[0])

    def test_release_failure_lists_manual_packages(self):
        self.make_snapshot()
        release = self.backends[ElementKind.RELEASE_RPMS]
        release.replay.return_value = ReplayResult(0, ["Could not install release packages"], succeeded=False)
        orchestrator = self.make_orchestrator(self.make_context())

        report = orchestrator.restore("latest", RestorePolicy.RELEASE_ONLY)

        self.assertEqual(report.manual_packages, ["rocky-release", "rocky-repos"])

    def test_cancel(self):
        self.make_snapshot()
        orchestrator = self.make_orchestrator(self.make_context(lambda prompt: False))

        with self.assertRaises(OperationCancelled):
            orchestrator.restore("latest", RestorePolicy.FULL)

        self.assertEqual(self.executed_steps(), [])

    def test_dry_run_mutates_nothing(self):
        self.make_snapshot()
        orchestrator = self.make_orchestrator(self.make_context(dry_run=True))

        report = orchestrator.restore("latest", RestorePolicy.FULL)

        self.assertTrue(report.dry_run)
        self.assertEqual(self.executed_steps(), [])
        self.pm.clean_cache.assert_not_called()

    def test_unknown_snapshot_is_fatal(self):
        self.make_snapshot()
        orchestrator = self.make_orchestrator(self.make_context())

        with self.assertRaises(BackupNotFoundError):
            orchestrator.restore("20200101_000000", RestorePolicy.FULL)

        self.assertEqual(self.executed_steps(), [])
        self.assertEqual(self.confirmer.prompts, [])


class TestReposOnlyRestore(RestoreTestCase):
    """Repository restore against real files"""

    def test_repeat_restore_is_stable(self):
        repos_dir = os.path.join(self.root, "etc/yum.repos.d")
        os.makedirs(repos_dir)
        with open(os.path.join(repos_dir, "rocky.repo"), 'w') as f:
            f.write("[baseos]\nenabled=1\n")

        pm = mock.MagicMock(spec=DnfPackageManager)
        snapshot = self.make_snapshot()
        os.makedirs(os.path.join(snapshot.path, "repos"))
        with open(os.path.join(snapshot.path, "repos", "rocky.repo"), 'w') as f:
            f.write("[baseos]\nenabled=1\n")

        # Conversion replaced the repositories
        os.remove(os.path.join(repos_dir, "rocky.repo"))
        with open(os.path.join(repos_dir, "SLL.repo"), 'w') as f:
            f.write("[sll]\n")

        orchestrator = RestoreOrchestrator(self.make_context(), self.store, pm, show_progress=False)
        orchestrator.restore("latest", RestorePolicy.REPOS_ONLY)
        first = sorted(os.listdir(repos_dir))
        orchestrator.restore("latest", RestorePolicy.REPOS_ONLY)

        self.assertEqual(first, ["rocky.repo"])
        self.assertEqual(sorted(os.listdir(repos_dir)), first)
        self.assertEqual(pm.method_calls, [])


if __name__ == '__main__':
    unittest.main()
