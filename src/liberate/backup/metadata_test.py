#!/usr/bin/env python3
"""
Tests for the snapshot metadata descriptor
"""

import os
import json
import tempfile
import unittest

from liberate.backup.elements import ElementKind
from liberate.backup.metadata import MetadataDescriptor
from liberate.errors import InvalidSnapshotError
from liberate.utils.distro import DistroInfo


class TestMetadataDescriptor(unittest.TestCase):
    """Test MetadataDescriptor class"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.metadata = MetadataDescriptor(
            backup_timestamp="20240115_103045",
            identity=DistroInfo("rocky", "Rocky Linux", "9.3"),
            backed_up_elements=[ElementKind.REPOS, ElementKind.PACKAGES],
            package_count=512,
            release_rpm_count=0,
            backup_date="2024-01-15 10:30:45",
            hostname="web01",
            kernel="5.14.0-362.8.1.el9_3.x86_64",
            script_version="1.2.0",
        )

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_to_dict_key_order(self):
        data = self.metadata.to_dict()

        self.assertEqual(list(data), [
            "backup_date", "backup_timestamp", "os_name", "os_id", "os_version",
            "os_version_major", "hostname", "kernel", "package_count",
            "release_rpm_count", "script_version", "backed_up_elements",
        ])
        self.assertEqual(data["os_version_major"], "9")
        # Element kinds are always stored in canonical order
        self.assertEqual(data["backed_up_elements"], ["packages", "repos"])

    def test_write_and_read(self):
        self.metadata.write(self.temp_dir.name)

        loaded = MetadataDescriptor.read(self.temp_dir.name)

        self.assertEqual(loaded.to_dict(), self.metadata.to_dict())
        self.assertTrue(loaded.has_element(ElementKind.REPOS))
        self.assertFalse(loaded.has_element(ElementKind.RELEASE_RPMS))

    def test_empty_element_set_is_recorded(self):
        """An all-excluded build still says so explicitly"""
        metadata = MetadataDescriptor("20240115_103045", DistroInfo("rocky", "Rocky Linux", "9.3"), [])
        metadata.write(self.temp_dir.name)

        with open(os.path.join(self.temp_dir.name, "metadata.json")) as f:
            self.assertEqual(json.load(f)["backed_up_elements"], [])
        self.assertEqual(MetadataDescriptor.read(self.temp_dir.name).backed_up_elements, [])

    def test_descriptor_without_element_list(self):
        """Descriptors predating element tracking hold every element"""
        data = self.metadata.to_dict()
        del data["backed_up_elements"]

        loaded = MetadataDescriptor.from_dict(data)

        self.assertEqual(loaded.backed_up_elements, list(ElementKind))

    def test_unknown_elements_are_ignored(self):
        data = self.metadata.to_dict()
        data["backed_up_elements"] = ["repos", "kernel_modules"]

        self.assertEqual(MetadataDescriptor.from_dict(data).backed_up_elements, [ElementKind.REPOS])

    def test_read_missing(self):
        with self.assertRaises(InvalidSnapshotError):
            MetadataDescriptor.read(self.temp_dir.name)

    def test_read_corrupt(self):
        with open(os.path.join(self.temp_dir.name, "metadata.json"), 'w') as f:
            f.write("{not json")

        with self.assertRaises(InvalidSnapshotError):
            MetadataDescriptor.read(self.temp_dir.name)


if __name__ == '__main__':
    unittest.main()
