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

"""Installed-version lookup from the Windows uninstall registry.

Detection Logic:
    - Enumerates HKLM\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall
      in the 64-bit and 32-bit registry views
    - Matches DisplayName exactly (case-insensitive) first
    - Falls back to a wildcard match when the name contains ``*`` or ``?``,
      otherwise to a case-insensitive substring match (legacy product names
      such as "FSLogix Apps" vs "Microsoft FSLogix Apps")
    - Zero matches -> 0.0.0.0 (not installed)
    - Several matches -> the first in enumeration order, with a warning

Lookups never raise: a missing registry, an unreadable key or an unparseable
DisplayVersion all mean "not installed".

Example:
    ```python
    from fslxagent.system.uninstall import RegistryVersionProbe

    probe = RegistryVersionProbe()
    print(probe.current_version("Microsoft FSLogix Apps"))
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import fnmatch
from typing import Protocol

from fslxagent.logging import Logger, get_global_logger
from fslxagent.versioning.keys import PackageVersion

try:  # Windows-only module; absent on other hosts
    import winreg  # type: ignore
except ImportError:  # pragma: no cover - not available on Linux runners
    winreg = None  # type: ignore

UNINSTALL_PATH = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"


@dataclass(frozen=True)
class UninstallEntry:
    display_name: str
    display_version: str


class VersionProbe(Protocol):
    def current_version(self, display_name: str) -> PackageVersion:
        ...


def _matches(display_name: str, entries: Sequence[UninstallEntry]) -> list[UninstallEntry]:
    wanted = display_name.casefold()
    exact = [e for e in entries if e.display_name.casefold() == wanted]
    if exact:
        return exact
    if any(ch in display_name for ch in "*?"):
        return [e for e in entries if fnmatch.fnmatchcase(e.display_name.casefold(), wanted)]
    return [e for e in entries if wanted in e.display_name.casefold()]


def current_version(
    display_name: str,
    entries: Sequence[UninstallEntry],
    logger: Logger | None = None,
) -> PackageVersion:
    """Return the installed version of a product from uninstall entries.

    Args:
        display_name: Product DisplayName, or a wildcard pattern.
        entries: Uninstall entries in registry enumeration order.
        logger: Logger; the global logger is used when omitted.

    Returns:
        The installed version, or 0.0.0.0 if the product is not found.
    """
    if logger is None:
        logger = get_global_logger()

    matches = _matches(display_name, entries)
    if not matches:
        logger.verbose("PROBE", f"{display_name!r} is not installed")
        return PackageVersion.NOT_INSTALLED

    chosen = matches[0]
    if len(matches) > 1:
        names = ", ".join(f"{m.display_name} {m.display_version}" for m in matches)
        logger.warning(
            "PROBE",
            f"{len(matches)} installed products match {display_name!r} ({names}); "
            f"using {chosen.display_name!r}",
        )

    version = PackageVersion.parse(chosen.display_version)
    logger.verbose("PROBE", f"Installed: {chosen.display_name} {version}")
    return version


def _reg_value(key, value_name: str) -> str | None:
    try:
        value, _ = winreg.QueryValueEx(key, value_name)
    except OSError:
        return None
    if value is None:
        return None
    return str(value)


def read_uninstall_entries() -> list[UninstallEntry]:
    """Enumerate uninstall entries from both registry views.

    Returns an empty list when winreg is unavailable. Duplicates seen in
    both views are reported once, keeping the first occurrence.
    """
    if winreg is None:
        return []
    views = [getattr(winreg, "KEY_WOW64_64KEY", 0), getattr(winreg, "KEY_WOW64_32KEY", 0)]
    entries: dict[tuple[str, str], UninstallEntry] = {}
    for view in views:
        try:
            with winreg.OpenKey(
                winreg.HKEY_LOCAL_MACHINE, UNINSTALL_PATH, 0, winreg.KEY_READ | view
            ) as root:
                index = 0
                while True:
                    try:
                        sub_name = winreg.EnumKey(root, index)
                    except OSError:
                        break
                    index += 1
                    try:
                        with winreg.OpenKey(root, sub_name) as subkey:
                            name = _reg_value(subkey, "DisplayName")
                            if not name:
                                continue
                            version = _reg_value(subkey, "DisplayVersion") or ""
                            entries.setdefault(
                                (name, version), UninstallEntry(name, version)
                            )
                    except OSError:
                        continue
        except OSError:
            continue
    return list(entries.values())


class RegistryVersionProbe:
    """VersionProbe backed by the uninstall registry."""

    def __init__(
        self,
        reader: Callable[[], list[UninstallEntry]] = read_uninstall_entries,
        logger: Logger | None = None,
    ) -> None:
        self._reader = reader
        self._logger = logger

    def current_version(self, display_name: str) -> PackageVersion:
        logger = self._logger or get_global_logger()
        try:
            entries = self._reader()
        except OSError as err:
            logger.warning("PROBE", f"Could not read uninstall registry: {err}")
            entries = []
        return current_version(display_name, entries, logger=logger)
