#!/usr/bin/env python3
"""
Tests for the release files backend
"""

import os
import tempfile
import unittest
from unittest import mock

from liberate.backup.backends.release_files import ReleaseFilesBackend
from liberate.package_managers.dnf import DnfPackageManager
from liberate.utils.context import RunContext, SystemPaths
from liberate.utils.distro import DistroInfo


class TestReleaseFilesBackend(unittest.TestCase):
    """Test ReleaseFilesBackend class"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = os.path.join(self.temp_dir.name, "root")
        self.snapshot_dir = os.path.join(self.temp_dir.name, "snapshot")
        os.makedirs(os.path.join(self.root, "etc"))
        os.makedirs(os.path.join(self.root, "usr/lib"))
        os.makedirs(self.snapshot_dir)

        with open(os.path.join(self.root, "usr/lib/os-release"), 'w') as f:
            f.write('NAME="AlmaLinux"\nID="almalinux"\n')
        os.symlink("../usr/lib/os-release", os.path.join(self.root, "etc/os-release"))
        with open(os.path.join(self.root, "etc/redhat-release"), 'w') as f:
            f.write("AlmaLinux release 8.9 (Midnight Oncilla)\n")

        self.pm = mock.MagicMock(spec=DnfPackageManager)
        ctx = RunContext(identity=DistroInfo("almalinux", "AlmaLinux", "8.9"),
                         paths=SystemPaths(root=self.root))
        self.backend = ReleaseFilesBackend(ctx, self.pm)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_capture_follows_symlinks(self):
        result = self.backend.capture(self.snapshot_dir)

        self.assertEqual(result.count, 2)
        captured = os.path.join(self.snapshot_dir, "release-files", "os-release")
        self.assertFalse(os.path.islink(captured))
        with open(captured) as f:
            self.assertIn('ID="almalinux"', f.read())
        self.assertEqual(self.backend.content_count(self.snapshot_dir), 2)

    def test_replay_changes_nothing(self):
        self.backend.capture(self.snapshot_dir)
        os.remove(os.path.join(self.root, "etc/redhat-release"))

        result = self.backend.replay(self.snapshot_dir)

        self.assertEqual(result.count, 0)
        self.assertTrue(result.succeeded)
        self.assertFalse(os.path.exists(os.path.join(self.root, "etc/redhat-release")))
        self.assertEqual(self.pm.method_calls, [])


if __name__ == '__main__':
    unittest.main()
