#!/usr/bin/env python3
"""
Configuration module for Liberate

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
import json
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_BACKUP_DIR = "/var/lib/liberate/backups"
DEFAULT_LOG_FILE = "/var/log/liberate.log"
DEFAULT_RETENTION_COUNT = 5
DEFAULT_EXPORT_PREFIX = "liberate-backup"

# Configuration file location
CONFIG_FILE = os.environ.get("LIBERATE_CONFIG", "/etc/liberate/config.json")

DEFAULTS = {
    "backup_dir": DEFAULT_BACKUP_DIR,
    "log_file": DEFAULT_LOG_FILE,
    "retention_count": DEFAULT_RETENTION_COUNT,
    "export_prefix": DEFAULT_EXPORT_PREFIX,
}


class Config:
    """Configuration manager for Liberate"""

    def __init__(self, config_file: Optional[str] = None):
        """Initialize the configuration manager

        Args:
            config_file: Path to the JSON configuration file, or None for the default
        """
        self.config_file = config_file or CONFIG_FILE
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file, falling back to defaults"""
        config = dict(DEFAULTS)

        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r') as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    config.update(loaded)
                    logger.debug(f"Loaded configuration from {self.config_file}")
                else:
                    logger.error(f"Ignoring configuration in {self.config_file}: not a JSON object")
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Error loading configuration: {e}")

        return config

    def _save_config(self, config: Dict[str, Any]) -> bool:
        """Save configuration to file"""
        try:
            os.makedirs(os.path.dirname(self.config_file) or ".", exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {self.config_file}")
            return True
        except (IOError, OSError) as e:
            logger.error(f"Error saving configuration: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value"""
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """Set a configuration value"""
        self.config[key] = value
        return self._save_config(self.config)

    def get_backup_dir(self) -> str:
        """Get the configured backup directory"""
        return os.path.expanduser(self.config.get("backup_dir") or DEFAULT_BACKUP_DIR)

    def get_log_file(self) -> str:
        """Get the configured log file"""
        return self.config.get("log_file") or DEFAULT_LOG_FILE

    def get_retention_count(self) -> int:
        """Get how many snapshots pruning keeps"""
        try:
            count = int(self.config.get("retention_count", DEFAULT_RETENTION_COUNT))
        except (TypeError, ValueError):
            logger.warning(f"Invalid retention_count in configuration, using {DEFAULT_RETENTION_COUNT}")
            return DEFAULT_RETENTION_COUNT
        return max(count, 1)

    def get_export_prefix(self) -> str:
        """Get the file name prefix used for exported archives"""
        return self.config.get("export_prefix") or DEFAULT_EXPORT_PREFIX


# Create singleton instance
config = Config()
