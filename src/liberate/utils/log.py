#!/usr/bin/env python3
"""
Logging setup for Liberate

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
import sys
import logging
from typing import Optional

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

COLORS = {
    logging.ERROR: '\033[0;31m',
    logging.WARNING: '\033[0;33m',
    SUCCESS: '\033[0;32m',
    logging.INFO: '\033[0;34m',
}
RESET = '\033[0m'

PREFIXES = {
    logging.ERROR: "ERROR: ",
    logging.WARNING: "WARNING: ",
    logging.INFO: "INFO: ",
}


def log_success(logger: logging.Logger, message: str) -> None:
    """Log a message at the SUCCESS level"""
    logger.log(SUCCESS, message)


class ConsoleFormatter(logging.Formatter):
    """Prefix and colour console messages by level"""

    def __init__(self, use_color: bool = True):
        super().__init__('%(message)s')
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = PREFIXES.get(record.levelno, "") + super().format(record)
        color = COLORS.get(record.levelno)
        if self.use_color and color:
            return f"{color}{message}{RESET}"
        return message


class _SuccessAndAbove(logging.Filter):
    """Hide plain INFO records from the console unless running verbose"""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= SUCCESS


def configure_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Configure the root logger with a console handler and an optional log file

    Args:
        log_file: File receiving every record at DEBUG and above
        verbose: Also show INFO records on the console
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.INFO)
    console.setFormatter(ConsoleFormatter(use_color=sys.stderr.isatty()))
    if not verbose:
        console.addFilter(_SuccessAndAbove())
    root.addHandler(console)

    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(log_file)
        except (IOError, OSError) as e:
            logging.getLogger(__name__).warning(f"Could not open log file {log_file}: {e}")
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                '[%(asctime)s] [%(levelname)s] %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
            root.addHandler(file_handler)
