#!/usr/bin/env python3
"""
Tests for the repository backend
"""

import os
import tempfile
import unittest
from unittest import mock

from liberate.backup.backends.repos import ReposBackend
from liberate.package_managers.dnf import DnfPackageManager
from liberate.utils.context import RunContext, SystemPaths
from liberate.utils.distro import DistroInfo


def _write(path, content):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)


def _read_tree(directory):
    state = {}
    for name in sorted(os.listdir(directory)):
        with open(os.path.join(directory, name)) as f:
            state[name] = f.read()
    return state


class TestReposBackend(unittest.TestCase):
    """Test ReposBackend class"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = os.path.join(self.temp_dir.name, "root")
        self.snapshot = os.path.join(self.temp_dir.name, "snapshot")
        os.makedirs(self.snapshot)

        self.repos_dir = os.path.join(self.root, "etc", "yum.repos.d")
        _write(os.path.join(self.repos_dir, "rocky.repo"), "[baseos]\nname=Rocky BaseOS\n")
        _write(os.path.join(self.repos_dir, "epel.repo"), "[epel]\nname=EPEL\n")

        ctx = RunContext(identity=DistroInfo("rocky", "Rocky Linux", "9.3"),
                         paths=SystemPaths(root=self.root))
        self.backend = ReposBackend(ctx, mock.MagicMock(spec=DnfPackageManager))

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_capture(self):
        result = self.backend.capture(self.snapshot)

        self.assertEqual(result.count, 2)
        self.assertEqual(result.warnings, [])
        self.assertEqual(sorted(os.listdir(os.path.join(self.snapshot, "repos"))),
                         ["epel.repo", "rocky.repo"])
        self.assertEqual(self.backend.content_count(self.snapshot), 2)

    def test_capture_without_repo_dir(self):
        """A missing repository directory is a warning, not an error"""
        for name in os.listdir(self.repos_dir):
            os.remove(os.path.join(self.repos_dir, name))
        os.rmdir(self.repos_dir)

        result = self.backend.capture(self.snapshot)

        self.assertEqual(result.count, 0)
        self.assertEqual(len(result.warnings), 1)

    def test_replay_removes_vendor_repos_first(self):
        self.backend.capture(self.snapshot)
        _write(os.path.join(self.repos_dir, "SLL-9.repo"), "[sll]\n")
        _write(os.path.join(self.repos_dir, "sles_es.repo"), "[sles]\n")
        os.remove(os.path.join(self.repos_dir, "rocky.repo"))

        result = self.backend.replay(self.snapshot)

        self.assertTrue(result.succeeded)
        self.assertEqual(result.count, 2)
        self.assertEqual(sorted(os.listdir(self.repos_dir)), ["epel.repo", "rocky.repo"])

    def test_replay_twice_leaves_same_state(self):
        self.backend.capture(self.snapshot)
        _write(os.path.join(self.repos_dir, "SLL-9.repo"), "[sll]\n")
        _write(os.path.join(self.repos_dir, "rocky.repo"), "modified\n")

        self.backend.replay(self.snapshot)
        once = _read_tree(self.repos_dir)
        self.backend.replay(self.snapshot)
        twice = _read_tree(self.repos_dir)

        self.assertEqual(once, twice)
        self.assertEqual(once["rocky.repo"], "[baseos]\nname=Rocky BaseOS\n")

    def test_replay_empty_backup(self):
        os.makedirs(os.path.join(self.snapshot, "repos"))

        result = self.backend.replay(self.snapshot)

        self.assertFalse(result.succeeded)
        self.assertIn("No repository files in backup", result.warnings)
        # Live repositories are left alone apart from vendor files
        self.assertEqual(len(os.listdir(self.repos_dir)), 2)


if __name__ == '__main__':
    unittest.main()
