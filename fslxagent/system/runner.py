"""Process execution seam for system commands.

Everything that shells out (installer, cmdkey, PowerShell service control)
goes through a CommandRunner so tests can substitute a fake that records
commands and returns canned results.
"""

from __future__ import annotations

from collections.abc import Sequence
import subprocess
from typing import Protocol


class CommandRunner(Protocol):
    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        ...


class SubprocessRunner:
    """Run commands synchronously with subprocess; never raises on exit code."""

    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        return subprocess.run(list(command), capture_output=True, text=True, check=False)


def powershell(command: str) -> list[str]:
    """Build a non-interactive PowerShell invocation for a script snippet."""
    return ["powershell", "-NoProfile", "-NonInteractive", "-Command", command]
