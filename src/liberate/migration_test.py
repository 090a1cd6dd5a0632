#!/usr/bin/env python3
"""
Tests for the release package conversion
"""

import os
import datetime
import tempfile
import unittest
from unittest import mock

from liberate.errors import OperationCancelled, PackageManagerError, PrerequisiteError
from liberate.migration import Migration, read_os_release
from liberate.package_managers.dnf import DnfPackageManager
from liberate.utils.context import RunContext, SystemPaths
from liberate.utils.distro import DistroInfo


def _write(path, content):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)


class Answers:

    def __init__(self, answer=True):
        self.answer = answer

    def confirm(self, prompt, default=False):
        return self.answer


class TestMigration(unittest.TestCase):
    """Test Migration class"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = self.temp_dir.name
        self.pm = mock.MagicMock(spec=DnfPackageManager)
        self.pm.name = "dnf"
        self.pm.is_installed.side_effect = lambda name: name == "rocky-release"
        self.pm.install.return_value = True
        self.pm.remove.return_value = True
        self.pm.reinstall.return_value = True
        self.pm.repolist.return_value = True

        _write(os.path.join(self.root, "usr/share/redhat-release/EULA"), "EULA\n")
        _write(os.path.join(self.root, "etc/dnf/protected.d/redhat-release.conf"), "redhat-release\n")

    def tearDown(self):
        self.temp_dir.cleanup()

    def make_migration(self, identity=None, answer=True, dry_run=False, **kwargs):
        ctx = RunContext(identity=identity or DistroInfo("rocky", "Rocky Linux", "9.3"),
                         paths=SystemPaths(root=self.root), dry_run=dry_run,
                         confirmer=Answers(answer))
        return Migration(ctx, self.pm, **kwargs)

    def test_liberate_el9(self):
        migration = self.make_migration()

        migration.liberate()

        self.pm.remove.assert_called_once_with(["rocky-release"], nodeps=True)
        self.pm.install.assert_called_once_with(["sll-release"])
        self.assertFalse(os.path.exists(os.path.join(self.root, "usr/share/redhat-release")))
        self.assertFalse(os.path.exists(os.path.join(self.root, "etc/dnf/protected.d/redhat-release.conf")))
        self.pm.reinstall.assert_not_called()

    def test_liberate_el7_keeps_protected_conf(self):
        self.pm.is_installed.side_effect = lambda name: name in ("centos-release", "anaconda-core")
        migration = self.make_migration(DistroInfo("centos", "CentOS Linux", "7.9.2009"))

        migration.liberate()

        self.pm.install.assert_called_once_with(["sles_es-release-server"])
        self.pm.upgrade.assert_called_once_with(["anaconda-core"])
        self.assertTrue(os.path.exists(os.path.join(self.root, "etc/dnf/protected.d/redhat-release.conf")))

    def test_liberate_install_failure(self):
        self.pm.install.return_value = False
        migration = self.make_migration()

        with self.assertRaises(PackageManagerError):
            migration.liberate()

    def test_liberate_cancelled(self):
        migration = self.make_migration(answer=False)

        with self.assertRaises(OperationCancelled):
            migration.liberate()

        self.pm.remove.assert_not_called()

    def test_liberate_reinstall_all(self):
        migration = self.make_migration(reinstall_packages=True, reinstall_log="/tmp/reinstall.log")

        migration.liberate()

        self.pm.reinstall.assert_called_once_with(["*"], excludes=["venv-salt-minion"],
                                                  log_file="/tmp/reinstall.log", obsoletes=False)

    def test_liberate_dry_run(self):
        migration = self.make_migration(dry_run=True, install_logos=True)

        migration.liberate()

        self.pm.remove.assert_not_called()
        self.pm.install.assert_not_called()
        self.assertTrue(os.path.exists(os.path.join(self.root, "usr/share/redhat-release/EULA")))

    def test_original_release_package(self):
        self.assertEqual(self.make_migration().original_release_package(), "rocky-release")
        stream = self.make_migration(DistroInfo("centos", "CentOS Stream", "9"))
        self.assertEqual(stream.original_release_package(), "centos-stream-release")

        with self.assertRaises(PrerequisiteError):
            self.make_migration(DistroInfo("fedora", "Fedora", "9")).original_release_package()

    def test_already_liberated(self):
        migration = self.make_migration()
        self.assertTrue(migration.check_already_liberated())

        migration.marker.write("Rocky Linux 9.3")

        self.assertFalse(migration.check_already_liberated())
        self.assertTrue(migration.check_already_liberated(force=True))

    @mock.patch('liberate.migration.shutil.which', return_value="/usr/bin/dnf")
    @mock.patch('liberate.migration.shutil.disk_usage')
    def test_prerequisites_low_space(self, mock_usage, mock_which):
        mock_usage.return_value = mock.Mock(free=50 * 1024 * 1024)
        migration = self.make_migration()

        with self.assertRaises(PrerequisiteError):
            migration.check_prerequisites(os.path.join(self.root, "var/backups/liberate"))

        # Nearest existing parent is measured
        mock_usage.assert_called_once_with(self.root)

    @mock.patch('liberate.migration.shutil.which', return_value="/usr/bin/dnf")
    @mock.patch('liberate.migration.shutil.disk_usage')
    def test_prerequisites_repolist_failure_only_warns(self, mock_usage, mock_which):
        mock_usage.return_value = mock.Mock(free=5000 * 1024 * 1024)
        self.pm.repolist.return_value = False
        migration = self.make_migration()

        with self.assertLogs('liberate.migration', level='WARNING'):
            migration.check_prerequisites(self.root)

    def test_verify(self):
        self.pm.is_installed.side_effect = lambda name: name == "sll-release"
        _write(os.path.join(self.root, "etc/os-release"), 'NAME="SUSE Liberty Linux"\nID="sll"\n')
        migration = self.make_migration()
        migration.create_marker()

        self.assertTrue(migration.verify())

    def test_verify_reports_problems(self):
        _write(os.path.join(self.root, "etc/os-release"), 'ID="rocky"\n')
        migration = self.make_migration()

        self.assertFalse(migration.verify())

    def test_generate_report(self):
        _write(os.path.join(self.root, "etc/os-release"), 'PRETTY_NAME="SUSE Liberty Linux 9"\nID="sll"\n')
        self.pm.query_installed.return_value = ["bash", "sll-release", "sll-logos"]
        migration = self.make_migration()

        with mock.patch('builtins.print'):
            path = migration.generate_report("/var/backups/liberate/20240115_103045", None,
                                             now=datetime.datetime(2024, 1, 15, 10, 40, 0))

        self.assertEqual(path, os.path.join(self.root, "var/log/liberate_report_20240115_104000.txt"))
        with open(path) as f:
            content = f.read()
        self.assertIn("Distribution: Rocky Linux", content)
        self.assertIn("sll-logos\nsll-release", content)
        self.assertIn("/var/backups/liberate/20240115_103045", content)
        self.assertIn("Log file not found", content)


class TestReadOsRelease(unittest.TestCase):

    def test_parse(self):
        with tempfile.NamedTemporaryFile('w', suffix='os-release', delete=False) as f:
            f.write('# comment\nNAME="Rocky Linux"\nVERSION_ID=\'9.3\'\nID=rocky\n')
        try:
            values = read_os_release(f.name)
        finally:
            os.remove(f.name)

        self.assertEqual(values, {'NAME': 'Rocky Linux', 'VERSION_ID': '9.3', 'ID': 'rocky'})

    def test_missing(self):
        self.assertEqual(read_os_release("/nonexistent/os-release"), {})


if __name__ == '__main__':
    unittest.main()
