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

"""Configuration loading and merging for fslxagent.

Every policy value the agent uses (share size, username format, accepted
installer exit codes, settle waits, ...) lives in one AgentConfig. The
effective configuration is built from layers:

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULTS in this module)
2. **Config file** (optional YAML, e.g. ``fslx.yaml``)
3. **Overrides** (a nested dict, usually built from CLI flags)
4. **Environment** (``FSLX_ACCOUNT``, ``FSLX_SHARE``, ``FSLX_SECRET``,
   also read from a ``.env`` file) fills required share inputs that are
   still empty after the layers above.

Merge Behavior
--------------
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

File Layout
-----------
    share:
      account: mystorageaccount
      name: profiles
      secret: "<storage key>"
      principal_format: "localhost\\\\{account}"
    package:
      accepted_exit_codes: [0]
    profiles:
      size_in_mbs: 30000
    runtime:
      post_install_settle_seconds: 30

Error Handling
--------------
- ConfigError: missing file, YAML parse errors, non-mapping documents,
  missing required inputs, values of the wrong type or out of range
- All errors are chained with "from err" for better debugging
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
import os
from pathlib import Path
import tempfile
from typing import Any

from dotenv import load_dotenv
import yaml

from fslxagent.exceptions import ConfigError

ENV_PREFIX = "FSLX_"

# REG_DWORD is a 32-bit unsigned value
DWORD_MAX = 0xFFFFFFFF

DEFAULTS: dict[str, Any] = {
    "share": {
        "account": "",
        "name": "",
        "secret": "",
        "suffix": "file.core.windows.net",
        "principal_format": "localhost\\{account}",
        "port": 445,
    },
    "package": {
        "redirect_url": "https://aka.ms/fslogix_download",
        "display_name": "Microsoft FSLogix Apps",
        "installer_entry": "x64/Release/FSLogixAppsSetup.exe",
        "install_args": ["/install", "/quiet", "/norestart"],
        "accepted_exit_codes": [0],
        "service_name": "frxsvc",
    },
    "profiles": {
        "registry_path": "HKLM:\\SOFTWARE\\FSLogix\\Profiles",
        "profile_path_key": "VHDLocations",
        "size_in_mbs": 30000,
        "volume_type": "VHDX",
        "enabled": True,
        "access_network_as_computer_object": True,
        "delete_local_profile_when_vhd_should_apply": True,
        "flip_flop_profile_directory_name": True,
        "extra": {},
    },
    "runtime": {
        "work_dir": None,
        "http_timeout": 60,
        "connect_timeout": 5.0,
        "download_retries": 3,
        "post_install_settle_seconds": 30,
        "pre_configure_settle_seconds": 10,
        "audit_log": None,
    },
}

# -------------------------------
# Data types
# -------------------------------


@dataclass(frozen=True)
class ShareTarget:
    """Network share the profile containers live on.

    Attributes:
        server_fqdn: e.g. ``mystorage.file.core.windows.net``.
        share_name: e.g. ``profiles``.
        profile_path: UNC path, e.g. ``\\\\mystorage.file.core.windows.net\\profiles``.
    """

    server_fqdn: str
    share_name: str
    profile_path: str

    @classmethod
    def from_account(
        cls, account: str, share_name: str, suffix: str = "file.core.windows.net"
    ) -> ShareTarget:
        server = f"{account}.{suffix}"
        return cls(
            server_fqdn=server,
            share_name=share_name,
            profile_path=f"\\\\{server}\\{share_name}",
        )


@dataclass(frozen=True)
class AgentConfig:
    """Effective configuration for one deployment run.

    Attributes mirror the file layout; see DEFAULTS for default values.
    The secret is excluded from repr so the config can be logged safely.
    """

    account_identifier: str
    share_name: str
    secret: str = field(repr=False)
    storage_suffix: str = "file.core.windows.net"
    principal_format: str = "localhost\\{account}"
    smb_port: int = 445
    redirect_url: str = "https://aka.ms/fslogix_download"
    product_display_name: str = "Microsoft FSLogix Apps"
    installer_entry: str = "x64/Release/FSLogixAppsSetup.exe"
    install_args: tuple[str, ...] = ("/install", "/quiet", "/norestart")
    accepted_exit_codes: frozenset[int] = frozenset({0})
    service_name: str = "frxsvc"
    registry_path: str = "HKLM:\\SOFTWARE\\FSLogix\\Profiles"
    profile_path_key: str = "VHDLocations"
    size_in_mbs: int = 30000
    volume_type: str = "VHDX"
    enabled: bool = True
    access_network_as_computer_object: bool = True
    delete_local_profile_when_vhd_should_apply: bool = True
    flip_flop_profile_directory_name: bool = True
    extra_settings: dict[str, Any] = field(default_factory=dict)
    work_dir: Path = field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "fslxagent"
    )
    http_timeout: float = 60
    connect_timeout: float = 5.0
    download_retries: int = 3
    post_install_settle_seconds: float = 30
    pre_configure_settle_seconds: float = 10
    audit_log: Path | None = None

    @property
    def share(self) -> ShareTarget:
        return ShareTarget.from_account(
            self.account_identifier, self.share_name, self.storage_suffix
        )

    @property
    def principal(self) -> str:
        return self.principal_format.format(account=self.account_identifier)

    @property
    def download_dir(self) -> Path:
        return self.work_dir / "downloads"

    @property
    def extract_dir(self) -> Path:
        return self.work_dir / "installer"


# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> dict[str, Any]:
    """
    Load a YAML config file and return the parsed mapping.

    Raises:
      ConfigError - missing file, parse error, empty or non-mapping document
    """
    if not p.exists():
        raise ConfigError(f"config file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    if not isinstance(data, dict):
        raise ConfigError(f"top-level YAML must be a mapping (dict): {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


# -------------------------------
# Normalisation and validation
# -------------------------------


def normalize_input(value: Any) -> str:
    """Strip whitespace and leading/trailing quote characters.

    Calling layers (scheduled tasks, deployment tools) frequently pass
    values wrapped in quotes; ``'"abc"'`` and ``"'abc'"`` both become ``abc``.
    """
    if value is None:
        return ""
    return str(value).strip().strip("'\"").strip()


def _fill_from_environment(merged: dict[str, Any]) -> None:
    """Fill empty share inputs from FSLX_* environment variables."""
    load_dotenv()
    share = merged.setdefault("share", {})
    for key, env_name in (
        ("account", "ACCOUNT"),
        ("name", "SHARE"),
        ("secret", "SECRET"),
    ):
        if not normalize_input(share.get(key)):
            env_value = os.getenv(f"{ENV_PREFIX}{env_name}")
            if env_value:
                share[key] = env_value


def _as_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except ValueError as err:
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}") from err


def _as_float(section: str, key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"{section}.{key} must be a number, got {value!r}") from err


def _as_dword(section: str, key: str, value: Any) -> int:
    number = _as_int(section, key, value)
    if not 0 <= number <= DWORD_MAX:
        raise ConfigError(
            f"{section}.{key} must fit in a DWORD (0-{DWORD_MAX}), got {number}"
        )
    return number


def _as_positive_float(section: str, key: str, value: Any) -> float:
    number = _as_float(section, key, value)
    if not number > 0:
        raise ConfigError(f"{section}.{key} must be greater than 0, got {number}")
    return number


def _as_bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def _build_config(merged: dict[str, Any]) -> AgentConfig:
    share = merged.get("share", {})
    package = merged.get("package", {})
    profiles = merged.get("profiles", {})
    runtime = merged.get("runtime", {})

    account = normalize_input(share.get("account"))
    share_name = normalize_input(share.get("name"))
    secret = normalize_input(share.get("secret"))

    missing = [
        name
        for name, value in (
            ("share.account", account),
            ("share.name", share_name),
            ("share.secret", secret),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    principal_format = str(share.get("principal_format", "localhost\\{account}"))
    if "{account}" not in principal_format:
        raise ConfigError(
            f"share.principal_format must contain '{{account}}': {principal_format!r}"
        )

    codes = package.get("accepted_exit_codes", [0])
    if not isinstance(codes, list) or not codes:
        raise ConfigError("package.accepted_exit_codes must be a non-empty list")
    accepted = frozenset(_as_int("package", "accepted_exit_codes", c) for c in codes)

    install_args = package.get("install_args", [])
    if not isinstance(install_args, list):
        raise ConfigError("package.install_args must be a list")

    extra = profiles.get("extra") or {}
    if not isinstance(extra, dict):
        raise ConfigError("profiles.extra must be a mapping")
    extra_settings: dict[str, Any] = {}
    for name, value in extra.items():
        if isinstance(value, bool):
            extra_settings[str(name)] = value
        elif isinstance(value, int):
            extra_settings[str(name)] = _as_dword("profiles.extra", str(name), value)
        elif isinstance(value, str):
            extra_settings[str(name)] = value
        else:
            raise ConfigError(
                f"profiles.extra.{name} must be a string, integer or boolean, "
                f"got {value!r}"
            )

    size = _as_dword("profiles", "size_in_mbs", profiles.get("size_in_mbs", 30000))
    if size <= 0:
        raise ConfigError(f"profiles.size_in_mbs must be positive, got {size}")

    port = _as_int("share", "port", share.get("port", 445))
    if not 1 <= port <= 65535:
        raise ConfigError(f"share.port must be between 1 and 65535, got {port}")

    retries = _as_int("runtime", "download_retries", runtime.get("download_retries", 3))
    if retries < 1:
        raise ConfigError("runtime.download_retries must be at least 1")

    work_dir = runtime.get("work_dir")
    audit_log = runtime.get("audit_log")

    kwargs: dict[str, Any] = {
        "account_identifier": account,
        "share_name": share_name,
        "secret": secret,
        "storage_suffix": normalize_input(share.get("suffix")) or "file.core.windows.net",
        "principal_format": principal_format,
        "smb_port": port,
        "redirect_url": str(package.get("redirect_url")),
        "product_display_name": str(package.get("display_name")),
        "installer_entry": str(package.get("installer_entry")),
        "install_args": tuple(str(a) for a in install_args),
        "accepted_exit_codes": accepted,
        "service_name": str(package.get("service_name")),
        "registry_path": str(profiles.get("registry_path")),
        "profile_path_key": str(profiles.get("profile_path_key")),
        "size_in_mbs": size,
        "volume_type": str(profiles.get("volume_type")),
        "enabled": _as_bool("profiles", "enabled", profiles.get("enabled", True)),
        "access_network_as_computer_object": _as_bool(
            "profiles",
            "access_network_as_computer_object",
            profiles.get("access_network_as_computer_object", True),
        ),
        "delete_local_profile_when_vhd_should_apply": _as_bool(
            "profiles",
            "delete_local_profile_when_vhd_should_apply",
            profiles.get("delete_local_profile_when_vhd_should_apply", True),
        ),
        "flip_flop_profile_directory_name": _as_bool(
            "profiles",
            "flip_flop_profile_directory_name",
            profiles.get("flip_flop_profile_directory_name", True),
        ),
        "extra_settings": extra_settings,
        "http_timeout": _as_positive_float(
            "runtime", "http_timeout", runtime.get("http_timeout", 60)
        ),
        "connect_timeout": _as_positive_float(
            "runtime", "connect_timeout", runtime.get("connect_timeout", 5.0)
        ),
        "download_retries": retries,
        "post_install_settle_seconds": _as_float(
            "runtime",
            "post_install_settle_seconds",
            runtime.get("post_install_settle_seconds", 30),
        ),
        "pre_configure_settle_seconds": _as_float(
            "runtime",
            "pre_configure_settle_seconds",
            runtime.get("pre_configure_settle_seconds", 10),
        ),
        "audit_log": Path(audit_log) if audit_log else None,
    }
    if work_dir:
        kwargs["work_dir"] = Path(work_dir)
    return AgentConfig(**kwargs)


# -------------------------------
# Public API
# -------------------------------


def load_agent_config(
    config_path: Path | None = None,
    *,
    overrides: dict[str, Any] | None = None,
    use_environment: bool = True,
) -> AgentConfig:
    """
    Load and merge the effective agent configuration.

    Steps
      1) Start from DEFAULTS.
      2) Merge the YAML config file, if given.
      3) Merge overrides (e.g. from CLI flags; None values are ignored).
      4) Fill empty share inputs from FSLX_* environment variables.
      5) Normalise and validate into an AgentConfig.

    Raises
      ConfigError on missing file, YAML errors, missing inputs or bad types.
    """
    from fslxagent.logging import get_global_logger

    logger = get_global_logger()

    merged = copy.deepcopy(DEFAULTS)
    layers_merged = 1

    if config_path is not None:
        config_path = config_path.resolve()
        logger.verbose("CONFIG", f"Loading: {config_path}")
        merged = _deep_merge_dicts(merged, _load_yaml_file(config_path))
        layers_merged += 1

    if overrides:
        cleaned = {
            section: {k: v for k, v in values.items() if v is not None}
            for section, values in overrides.items()
            if isinstance(values, dict)
        }
        merged = _deep_merge_dicts(merged, cleaned)
        layers_merged += 1

    logger.verbose("CONFIG", f"Deep merged {layers_merged} layer(s)")

    if use_environment:
        _fill_from_environment(merged)

    config = _build_config(merged)
    logger.debug("CONFIG", f"Effective config: {config!r}")
    return config
