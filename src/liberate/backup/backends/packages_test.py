#!/usr/bin/env python3
"""
Tests for the installed package list backend
"""

import os
import tempfile
import unittest
from unittest import mock

from liberate.backup.backends.packages import PackagesBackend, PACKAGE_QUERY_FORMAT
from liberate.package_managers.dnf import DnfPackageManager
from liberate.utils.context import RunContext
from liberate.utils.distro import DistroInfo


class TestPackagesBackend(unittest.TestCase):
    """Test PackagesBackend class"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.pm = mock.MagicMock(spec=DnfPackageManager)
        ctx = RunContext(identity=DistroInfo("almalinux", "AlmaLinux", "8.9"))
        self.backend = PackagesBackend(ctx, self.pm)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_capture_sorts_listing(self):
        self.pm.query_installed.return_value = [
            "zlib-1.2.11-40.el9.x86_64",
            "bash-5.1.8-6.el9.x86_64",
        ]

        result = self.backend.capture(self.temp_dir.name)

        self.pm.query_installed.assert_called_once_with(PACKAGE_QUERY_FORMAT)
        self.assertEqual(result.count, 2)
        with open(os.path.join(self.temp_dir.name, "packages.list")) as f:
            self.assertEqual(f.read(), "bash-5.1.8-6.el9.x86_64\nzlib-1.2.11-40.el9.x86_64\n")

    def test_capture_empty_listing_warns(self):
        self.pm.query_installed.return_value = []

        result = self.backend.capture(self.temp_dir.name)

        self.assertEqual(result.count, 0)
        self.assertEqual(len(result.warnings), 1)

    def test_replay_is_advisory(self):
        self.pm.query_installed.return_value = ["bash-5.1.8-6.el9.x86_64"]
        self.backend.capture(self.temp_dir.name)
        self.pm.reset_mock()

        result = self.backend.replay(self.temp_dir.name)

        self.assertEqual(result.count, 1)
        self.assertEqual(self.pm.method_calls, [])


if __name__ == '__main__':
    unittest.main()
