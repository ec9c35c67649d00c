# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Core version comparison utilities for fslxagent.

This module is format-agnostic: it does NOT query the registry or the
network. It only parses 4-part numeric versions and decides whether an
install is required.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import re
from typing import ClassVar

_NUM_SEP = re.compile(r"[.]")

# ----------------------------
# Version type
# ----------------------------


@dataclass(frozen=True, order=True)
class PackageVersion:
    """A 4-part numeric version (major.minor.build.revision).

    Ordering is numeric per component, left to right. The all-zero version
    means "not installed".

    Attributes:
        major: First component.
        minor: Second component.
        build: Third component.
        revision: Fourth component.

    """

    major: int = 0
    minor: int = 0
    build: int = 0
    revision: int = 0

    NOT_INSTALLED: ClassVar[PackageVersion]

    @classmethod
    def parse(cls, text: str | None) -> PackageVersion:
        """Parse a display-version string or filename fragment.

        Accepts one to four dot-separated ASCII numeric components; missing
        components are zero. Anything else (None, empty, letters, more than
        four parts) yields 0.0.0.0.

        Example:
            ```python
            PackageVersion.parse("2.9.8440.42104")  # 2.9.8440.42104
            PackageVersion.parse("2.9")             # 2.9.0.0
            PackageVersion.parse("garbage")         # 0.0.0.0
            ```
        """
        if not text:
            return cls.NOT_INSTALLED
        parts = _NUM_SEP.split(text.strip().lstrip("vV"))
        if not 1 <= len(parts) <= 4:
            return cls.NOT_INSTALLED
        # str.isdigit() also accepts superscripts, which int() rejects
        if not all(p.isascii() and p.isdigit() for p in parts):
            return cls.NOT_INSTALLED
        nums = [int(p) for p in parts] + [0] * (4 - len(parts))
        return cls(*nums)

    @property
    def is_installed(self) -> bool:
        return self != PackageVersion.NOT_INSTALLED

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.major, self.minor, self.build, self.revision)

    def __str__(self) -> str:
        return ".".join(str(n) for n in self.as_tuple())


PackageVersion.NOT_INSTALLED = PackageVersion(0, 0, 0, 0)


# ----------------------------
# Install decision
# ----------------------------


class InstallDecision(Enum):
    """Outcome of comparing the installed version with the remote one."""

    SKIP_UP_TO_DATE = "skip_up_to_date"
    INSTALL_MISSING = "install_missing"
    UPGRADE_AVAILABLE = "upgrade_available"


def compare_versions(a: PackageVersion, b: PackageVersion) -> int:
    """Compare two versions.
    Returns -1 if a < b, 0 if equal, 1 if a > b.
    """
    return (a > b) - (a < b)


def decide(local: PackageVersion, remote: PackageVersion) -> InstallDecision:
    """Decide whether the remote package should be installed.

    remote > local installs (INSTALL_MISSING when nothing is installed,
    UPGRADE_AVAILABLE otherwise); equal or older remote is skipped.
    """
    if compare_versions(remote, local) <= 0:
        return InstallDecision.SKIP_UP_TO_DATE
    if not local.is_installed:
        return InstallDecision.INSTALL_MISSING
    return InstallDecision.UPGRADE_AVAILABLE
