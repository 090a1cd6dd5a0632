#!/usr/bin/env python3
"""
Tests for logging setup
"""

import os
import logging
import tempfile
import unittest

from liberate.utils.log import ConsoleFormatter, SUCCESS, configure_logging, log_success


class TestConfigureLogging(unittest.TestCase):
    """Test configure_logging function"""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.saved_handlers = list(logging.getLogger().handlers)
        self.saved_level = logging.getLogger().level

    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        for handler in self.saved_handlers:
            root.addHandler(handler)
        root.setLevel(self.saved_level)
        self.temp_dir.cleanup()

    def test_file_receives_debug(self):
        log_file = os.path.join(self.temp_dir.name, "logs", "liberate.log")
        configure_logging(log_file)

        logger = logging.getLogger("liberate.test")
        logger.debug("debug line")
        log_success(logger, "done")
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(log_file) as f:
            content = f.read()
        self.assertIn("[DEBUG] debug line", content)
        self.assertIn("[SUCCESS] done", content)

    def test_unwritable_log_file_keeps_console(self):
        blocker = os.path.join(self.temp_dir.name, "file")
        open(blocker, 'w').close()

        configure_logging(os.path.join(blocker, "liberate.log"))

        self.assertEqual(len(logging.getLogger().handlers), 1)

    def test_console_formatter(self):
        record = logging.LogRecord("liberate", logging.WARNING, __file__, 1, "careful", None, None)
        self.assertEqual(ConsoleFormatter(use_color=False).format(record), "WARNING: careful")

        record = logging.LogRecord("liberate", SUCCESS, __file__, 1, "done", None, None)
        self.assertEqual(ConsoleFormatter(use_color=False).format(record), "done")


if __name__ == '__main__':
    unittest.main()
