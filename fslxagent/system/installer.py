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

"""Unattended installer execution.

Runs the extracted setup executable with fixed quiet/no-reboot flags and
waits for it to exit. There is no timeout: the installer decides how long
it takes.

Exit codes are checked against an allow-list (default ``{0}``). Codes such
as 3010 ("reboot required") are only accepted when the caller adds them.

Example:
    ```python
    from pathlib import Path
    from fslxagent.system.installer import check_exit_code, run_silent

    code = run_silent(Path("installer/FSLogixAppsSetup.exe"))
    check_exit_code(code, frozenset({0}))
    ```
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path

from fslxagent.exceptions import InstallFailed
from fslxagent.logging import Logger, get_global_logger
from fslxagent.system.runner import CommandRunner, SubprocessRunner

DEFAULT_INSTALL_ARGS: tuple[str, ...] = ("/install", "/quiet", "/norestart")


def run_silent(
    installer_path: Path,
    args: Sequence[str] = DEFAULT_INSTALL_ARGS,
    *,
    runner: CommandRunner | None = None,
    logger: Logger | None = None,
) -> int:
    """Run the installer non-interactively and return its exit code.

    Args:
        installer_path: Path to the extracted setup executable.
        args: Unattended flags.
        runner: Command runner (defaults to SubprocessRunner).
        logger: Logger; the global logger is used when omitted.

    Returns:
        The installer's exit code.

    Raises:
        InstallFailed: With code None if the process could not be started.
    """
    if logger is None:
        logger = get_global_logger()
    if runner is None:
        runner = SubprocessRunner()

    cmd = [str(installer_path), *args]
    logger.verbose("INSTALL", f"Running: {' '.join(cmd)}")
    try:
        result = runner.run(cmd)
    except OSError as err:
        raise InstallFailed(None, f"could not start installer {installer_path}: {err}") from err

    if result.stdout:
        for line in result.stdout.strip().splitlines():
            logger.debug("INSTALL", f"  {line}")
    logger.verbose("INSTALL", f"Installer exited with code {result.returncode}")
    return result.returncode


def check_exit_code(code: int, accepted_codes: Iterable[int] = (0,)) -> None:
    """Raise InstallFailed unless code is in accepted_codes."""
    if code not in set(accepted_codes):
        raise InstallFailed(code)
