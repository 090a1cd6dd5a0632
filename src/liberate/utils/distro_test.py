#!/usr/bin/env python3
"""
Tests for distribution detection
"""

import unittest
from unittest import mock

from liberate.errors import UnsupportedSystemError
from liberate.utils.distro import DistroInfo


class TestDistroInfo(unittest.TestCase):
    """Test DistroInfo class"""

    @mock.patch('liberate.utils.distro.distro')
    def test_detect_rocky(self, mock_distro):
        """Rocky Linux is detected with its human name"""
        mock_distro.id.return_value = 'rocky'
        mock_distro.version.return_value = '9.3'
        mock_distro.major_version.return_value = '9'
        mock_distro.name.return_value = 'Rocky Linux'

        info = DistroInfo().detect()

        self.assertEqual(info.id, 'rocky')
        self.assertEqual(info.name, 'Rocky Linux')
        self.assertEqual(info.version, '9.3')
        self.assertEqual(info.version_major, '9')
        self.assertTrue(info.is_supported)

    @mock.patch('liberate.utils.distro.distro')
    def test_detect_centos_stream(self, mock_distro):
        """CentOS Stream is told apart from CentOS"""
        mock_distro.id.return_value = 'centos'
        mock_distro.version.return_value = '8'
        mock_distro.major_version.return_value = '8'
        mock_distro.name.return_value = 'CentOS Stream 8'

        info = DistroInfo().detect()

        self.assertEqual(info.name, 'CentOS Stream')

    def test_version_major_derived(self):
        """Major version is derived from the full version"""
        info = DistroInfo(id='almalinux', name='AlmaLinux', version='8.9')
        self.assertEqual(info.version_major, '8')

    def test_ensure_supported(self):
        """Unsupported ids and versions are rejected"""
        with self.assertRaises(UnsupportedSystemError):
            DistroInfo(id='ubuntu', name='Ubuntu', version='22.04').ensure_supported()
        with self.assertRaises(UnsupportedSystemError):
            DistroInfo(id='rocky', name='Rocky Linux', version='10.0').ensure_supported()

        info = DistroInfo(id='ol', name='Oracle Linux', version='7.9')
        self.assertIs(info.ensure_supported(), info)

    def test_from_metadata(self):
        """Identity can be rebuilt from a snapshot descriptor"""
        info = DistroInfo.from_metadata({
            'os_id': 'rocky', 'os_name': 'Rocky Linux',
            'os_version': '9.3', 'os_version_major': '9',
        })
        self.assertEqual(str(info), 'Rocky Linux 9.3')
        self.assertEqual(info.version_major, '9')

    def test_target_vendor(self):
        """SUSE identities are recognised as the target vendor"""
        self.assertTrue(DistroInfo(id='sll', name='SUSE', version='9').is_target_vendor)
        self.assertFalse(DistroInfo(id='rocky', name='Rocky Linux', version='9').is_target_vendor)


if __name__ == '__main__':
    unittest.main()
