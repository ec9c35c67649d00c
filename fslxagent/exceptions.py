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

"""Exception hierarchy for fslxagent.

This module defines a custom exception hierarchy that allows callers to
distinguish between the error families of a deployment run:

- ConfigError: Invalid or missing agent configuration
- NetworkError: Redirect resolution, download, and reachability errors
- PackagingError: Archive extraction and installer errors
- SystemConfigError: Credential, registry, and service errors

All exceptions inherit from AgentError, allowing users to catch all agent
errors with a single except clause if needed.

The pipeline decides which errors abort a run. Errors from the version
resolution and install branch are fatal; everything under SystemConfigError
(and UnreachableResource) is recorded as a warning and the run continues.

Example:
    Catching specific error types:
        ```python
        from fslxagent.core import deploy
        from fslxagent.exceptions import ConfigError, NetworkError

        try:
            result = deploy(config)
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "AgentError",
    "ConfigError",
    "NetworkError",
    "PackagingError",
    "SystemConfigError",
    "ResolutionError",
    "DownloadError",
    "UnreachableResource",
    "ArchiveEntryNotFound",
    "ArchiveCorruptError",
    "InstallFailed",
    "CredentialPersistError",
    "ConfigurationWriteError",
    "ServiceControlError",
]


class AgentError(Exception):
    """Base exception for all fslxagent errors."""

    pass


class ConfigError(AgentError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing (syntax errors, invalid structure)
    - Missing required inputs (account, share name, secret)
    - Values of the wrong type (e.g. a non-integer size)
    """

    pass


class NetworkError(AgentError):
    """Raised for network-related errors (redirects, downloads, ports)."""

    pass


class PackagingError(AgentError):
    """Raised for archive and installer errors."""

    pass


class SystemConfigError(AgentError):
    """Raised when a post-install configuration step fails.

    These errors never abort a deployment run; the pipeline records them as
    warnings and keeps going.
    """

    pass


class ResolutionError(NetworkError):
    """The redirect endpoint could not be turned into a versioned download."""

    pass


class DownloadError(NetworkError):
    """The distribution archive could not be downloaded."""

    pass


class UnreachableResource(NetworkError):
    """A remote resource did not accept a TCP connection on its port."""

    pass


class ArchiveEntryNotFound(PackagingError):
    """The archive does not contain the expected entry.

    Upstream can change the internal layout of the distribution without
    notice; this is how that shows up.
    """

    def __init__(self, entry_name: str, archive_path: object) -> None:
        super().__init__(f"entry {entry_name!r} not found in archive {archive_path}")
        self.entry_name = entry_name


class ArchiveCorruptError(PackagingError):
    """The archive is missing or cannot be read as a ZIP file."""

    pass


class InstallFailed(PackagingError):
    """The installer exited with a code outside the accepted set.

    Attributes:
        code: Installer exit code, or None if the process never started.
    """

    def __init__(self, code: int | None, message: str | None = None) -> None:
        if message is None:
            message = f"installer failed with exit code {code}"
        super().__init__(message)
        self.code = code


class CredentialPersistError(SystemConfigError):
    """The credential manager refused to store the credential."""

    pass


class ConfigurationWriteError(SystemConfigError):
    """A single configuration value could not be written.

    Attributes:
        key: Name of the value that failed.
    """

    def __init__(self, key: str, reason: object) -> None:
        super().__init__(f"failed to write {key!r}: {reason}")
        self.key = key


class ServiceControlError(SystemConfigError):
    """The managed service could not be restarted."""

    pass
