#!/usr/bin/env python3
"""
Run context and confirmation handling for Liberate

Everything a component needs to know about the current run travels in a
single immutable RunContext instead of module level state.

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
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from .distro import DistroInfo
from .releases import DELETED_PATHS, RELEASE_FILES

logger = logging.getLogger(__name__)


class Confirmer(ABC):
    """Answers yes/no questions on behalf of the user"""

    @abstractmethod
    def confirm(self, prompt: str, default: bool = False) -> bool:
        pass


class AlwaysConfirm(Confirmer):
    """Non-interactive runs: every question is answered yes"""

    def confirm(self, prompt: str, default: bool = False) -> bool:
        logger.debug(f"Auto-confirmed: {prompt}")
        return True


class PromptConfirmer(Confirmer):
    """Ask on the terminal until a yes or no answer is given"""

    def __init__(self, input_func: Optional[Callable[[str], str]] = None,
                 output_func: Optional[Callable[[str], None]] = None):
        self.input_func = input_func or input
        self.output_func = output_func or print

    def confirm(self, prompt: str, default: bool = False) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        while True:
            try:
                answer = self.input_func(f"{prompt} {suffix}: ").strip().lower()
            except EOFError:
                return default

            if not answer:
                return default
            if answer in ('y', 'yes'):
                return True
            if answer in ('n', 'no'):
                return False
            self.output_func("Please answer yes or no.")


@dataclass(frozen=True)
class SystemPaths:
    """Live system locations touched by backup, restore and conversion

    All attributes are absolute system paths. ``resolve`` maps them onto the
    filesystem under ``root``, which is ``/`` except in tests.
    """
    root: str = "/"
    repos_dir: str = "/etc/yum.repos.d"
    dnf_conf: str = "/etc/dnf/dnf.conf"
    yum_conf: str = "/etc/yum.conf"
    protected_dir: str = "/etc/dnf/protected.d"
    os_release: str = "/etc/os-release"
    redhat_release_dir: str = "/usr/share/redhat-release"
    protected_release_conf: str = "/etc/dnf/protected.d/redhat-release.conf"
    marker: str = "/etc/sysconfig/liberated"
    report_dir: str = "/var/log"
    release_files: Tuple[str, ...] = tuple(RELEASE_FILES)
    deleted_paths: Tuple[str, ...] = tuple(DELETED_PATHS)
    rpm_cache_dirs: Tuple[str, ...] = ("/var/cache/yum", "/var/cache/dnf", "/var/lib/rpm")

    def resolve(self, path: str) -> str:
        """Map an absolute system path onto the live filesystem"""
        if self.root in ("", "/"):
            return path
        return os.path.join(self.root, path.lstrip("/"))


@dataclass(frozen=True)
class RunContext:
    """Immutable description of one invocation"""
    identity: DistroInfo
    paths: SystemPaths = field(default_factory=SystemPaths)
    dry_run: bool = False
    interactive: bool = False
    confirmer: Confirmer = field(default_factory=AlwaysConfirm)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("liberate"))

    def confirm(self, prompt: str, default: bool = False) -> bool:
        return self.confirmer.confirm(prompt, default)
