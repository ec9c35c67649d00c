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

"""Profile configuration writes to the registry.

The profile container service reads its settings from a single registry key
(``HKLM:\\SOFTWARE\\FSLogix\\Profiles`` by default). This module builds the
fixed ConfigurationSet from AgentConfig and writes it through a
RegistryAccessor.

Value Types:
    - bool -> REG_DWORD 0/1
    - int  -> REG_DWORD
    - str  -> REG_SZ

Write Semantics:
    - The full key path is created first (intermediate keys included).
    - Every value is overwritten, so applying the same set twice yields the
      same state.
    - A failing value does not stop the others; each failure is returned as
      a ConfigurationWriteError naming the value.

Accessors:
    - WindowsRegistryAccessor: winreg-backed, used on real hosts
    - InMemoryRegistry: dict-backed, used by tests and dry runs
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Union

from fslxagent.exceptions import ConfigurationWriteError
from fslxagent.logging import Logger, get_global_logger

if TYPE_CHECKING:
    from fslxagent.config.loader import AgentConfig

try:  # Windows-only module; absent on other hosts
    import winreg  # type: ignore
except ImportError:  # pragma: no cover - not available on Linux runners
    winreg = None  # type: ignore

SettingValue = Union[str, int, bool]
ConfigurationSet = dict[str, SettingValue]


class RegistryAccessor(Protocol):
    def ensure_key(self, path: str) -> None:
        ...

    def get_value(self, path: str, value_name: str) -> str | int | None:
        ...

    def set_value(self, path: str, value_name: str, value: SettingValue) -> None:
        ...


def encode_value(value: SettingValue) -> str | int:
    """Map a setting to the value stored in the registry (bools become 0/1)."""
    if isinstance(value, bool):
        return int(value)
    return value


class WindowsRegistryAccessor:
    """Minimal registry helper backed by winreg."""

    def __init__(self) -> None:
        if winreg is None:
            raise RuntimeError("winreg not available on this platform")

    def ensure_key(self, path: str) -> None:
        hive, subkey = self._split_path(path)
        # CreateKeyEx creates every missing segment of subkey.
        with winreg.CreateKeyEx(hive, subkey, 0, winreg.KEY_WRITE):
            pass

    def get_value(self, path: str, value_name: str) -> str | int | None:
        hive, subkey = self._split_path(path)
        try:
            with winreg.OpenKey(hive, subkey) as key:
                value, _ = winreg.QueryValueEx(key, value_name)
                return value
        except FileNotFoundError:
            return None

    def set_value(self, path: str, value_name: str, value: SettingValue) -> None:
        hive, subkey = self._split_path(path)
        encoded = encode_value(value)
        value_type = winreg.REG_DWORD if isinstance(encoded, int) else winreg.REG_SZ
        with winreg.CreateKeyEx(hive, subkey, 0, winreg.KEY_WRITE) as key:
            winreg.SetValueEx(key, value_name, 0, value_type, encoded)

    def _split_path(self, path: str) -> tuple[object, str]:
        cleaned = path.replace("/", "\\")
        marker = ":\\"
        if marker not in cleaned:
            raise ValueError(f"Invalid registry path: {path}")
        hive_name, subkey = cleaned.split(marker, 1)
        subkey = subkey.lstrip("\\")
        hive_map = {
            "HKLM": winreg.HKEY_LOCAL_MACHINE,
            "HKCU": winreg.HKEY_CURRENT_USER,
            "HKU": winreg.HKEY_USERS,
        }
        try:
            hive = hive_map[hive_name.upper()]
        except KeyError as exc:
            raise ValueError(f"Unsupported hive: {hive_name}") from exc
        return hive, subkey


class InMemoryRegistry:
    """Dict-backed RegistryAccessor.

    Key paths are case-insensitive like the real registry. set_value on a
    key that was never created raises FileNotFoundError, matching what
    happens when ensure_key is skipped on a real host.
    """

    def __init__(self) -> None:
        self.keys: set[str] = set()
        self.values: dict[tuple[str, str], str | int] = {}

    @staticmethod
    def _norm(path: str) -> str:
        return path.replace("/", "\\").rstrip("\\").casefold()

    def ensure_key(self, path: str) -> None:
        norm = self._norm(path)
        hive, sep, rest = norm.partition(":\\")
        if not sep or not rest:
            raise ValueError(f"Invalid registry path: {path}")
        current = f"{hive}:"
        for segment in rest.split("\\"):
            current = f"{current}\\{segment}"
            self.keys.add(current)

    def get_value(self, path: str, value_name: str) -> str | int | None:
        return self.values.get((self._norm(path), value_name))

    def set_value(self, path: str, value_name: str, value: SettingValue) -> None:
        norm = self._norm(path)
        if norm not in self.keys:
            raise FileNotFoundError(f"registry key does not exist: {path}")
        self.values[(norm, value_name)] = encode_value(value)

    def snapshot(self) -> dict[tuple[str, str], str | int]:
        return dict(self.values)


def build_configuration_set(config: AgentConfig) -> ConfigurationSet:
    """Build the ordered set of profile settings a run must guarantee."""
    settings: ConfigurationSet = {
        "Enabled": config.enabled,
        config.profile_path_key: config.share.profile_path,
        "AccessNetworkAsComputerObject": config.access_network_as_computer_object,
        "DeleteLocalProfileWhenVHDShouldApply": config.delete_local_profile_when_vhd_should_apply,
        "FlipFlopProfileDirectoryName": config.flip_flop_profile_directory_name,
        "VolumeType": config.volume_type,
        "SizeInMBs": config.size_in_mbs,
    }
    for key, value in config.extra_settings.items():
        settings[str(key)] = value
    return settings


def apply_configuration(
    config_set: ConfigurationSet,
    base_path: str,
    registry: RegistryAccessor,
    logger: Logger | None = None,
) -> list[ConfigurationWriteError]:
    """Write every setting under base_path; return the failures.

    Args:
        config_set: Ordered settings to write.
        base_path: Registry key path (e.g., ``HKLM:\\SOFTWARE\\FSLogix\\Profiles``).
        registry: Accessor used for the writes.
        logger: Logger; the global logger is used when omitted.

    Returns:
        One ConfigurationWriteError per setting that could not be written.
        Empty when everything was applied.
    """
    if logger is None:
        logger = get_global_logger()

    try:
        registry.ensure_key(base_path)
    except (OSError, ValueError) as err:
        logger.warning("REGISTRY", f"Could not create {base_path}: {err}")
        return [ConfigurationWriteError(key, err) for key in config_set]

    errors: list[ConfigurationWriteError] = []
    for key, value in config_set.items():
        try:
            registry.set_value(base_path, key, value)
        except (OSError, ValueError, TypeError, OverflowError) as err:
            errors.append(ConfigurationWriteError(key, err))
            logger.warning("REGISTRY", f"{key}: {err}")
            continue
        logger.verbose("REGISTRY", f"{base_path}\\{key} = {encode_value(value)!r}")
    return errors


def verify_configuration(
    config_set: ConfigurationSet,
    base_path: str,
    registry: RegistryAccessor,
) -> list[str]:
    """Read every setting back; return the names whose value differs."""
    mismatched: list[str] = []
    for key, value in config_set.items():
        try:
            actual = registry.get_value(base_path, key)
        except (OSError, ValueError):
            actual = None
        if actual != encode_value(value):
            mismatched.append(key)
    return mismatched
