#!/usr/bin/env python3
"""
Progress tracking utilities for Liberate

This handles terminal progress bars for the multi-step backup and
restore operations.
"""

import sys
import logging
from enum import Enum
from typing import Optional, Union

from tqdm import tqdm

logger = logging.getLogger(__name__)


class OperationType(Enum):
    """Types of operations that can be tracked"""
    BACKUP = "backup"
    RESTORE = "restore"
    EXPORT = "export"
    IMPORT = "import"


class ProgressTracker:
    """Track and display progress of a sequence of steps"""

    def __init__(self,
                 operation_type: Union[str, OperationType],
                 total: int = 0,
                 desc: str = "",
                 unit: str = "steps",
                 enabled: Optional[bool] = None):
        """Initialize a progress tracker

        Args:
            operation_type: Type of operation being tracked (backup, restore, etc.)
            total: Total number of steps
            desc: Description of the operation
            unit: Unit of items being processed
            enabled: Force the bar on or off; by default it is shown only on a terminal
        """
        self.operation_type = operation_type.value if isinstance(operation_type, OperationType) else operation_type
        self.total = total
        self.desc = desc or f"Running {self.operation_type}"
        self.current = 0

        if enabled is None:
            enabled = sys.stderr.isatty()

        self.pbar = tqdm(
            total=total,
            desc=self.desc,
            unit=unit,
            leave=False,
            disable=not enabled,
            bar_format='{desc}: {percentage:3.0f}%|{bar}| {n_fmt}/{total_fmt}',
        )

    def update(self, n: int = 1, status: str = "") -> None:
        """Advance the tracker

        Args:
            n: Number of steps completed
            status: Status text to display next to the bar
        """
        self.current += n
        if status:
            self.pbar.set_postfix_str(status, refresh=False)
        self.pbar.update(n)

    def close(self) -> None:
        self.pbar.close()

    def __enter__(self) -> 'ProgressTracker':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
