"""
Pytest configuration and shared fixtures for fslxagent tests.

This module provides reusable fixtures and test doubles used across
the test suite.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import subprocess
from typing import Any
import zipfile

import pytest
import yaml

from fslxagent.config import AgentConfig

INSTALLER_ENTRY = "x64/Release/FSLogixAppsSetup.exe"


class FakeRunner:
    """CommandRunner that records commands and returns canned results.

    Results are chosen by the first matching prefix in ``responses``
    (matched against the joined command line); unmatched commands succeed.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.commands: list[list[str]] = []

    def run(self, command: Sequence[str]) -> subprocess.CompletedProcess[str]:
        cmd = list(command)
        self.commands.append(cmd)
        line = " ".join(cmd)
        for needle, response in self.responses.items():
            if needle in line:
                if isinstance(response, BaseException):
                    raise response
                if isinstance(response, int):
                    return subprocess.CompletedProcess(cmd, response, "", "")
                return subprocess.CompletedProcess(cmd, *response)
        return subprocess.CompletedProcess(cmd, 0, "", "")

    def ran(self, needle: str) -> bool:
        return any(needle in " ".join(c) for c in self.commands)


class RecordingLogger:
    """Logger that keeps every message for assertions."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def step(self, step: int, total: int, message: str) -> None:
        self.messages.append(f"[{step}/{total}] {message}")

    def warning(self, prefix: str, message: str) -> None:
        self.messages.append(f"[WARNING] [{prefix}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        self.messages.append(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        self.messages.append(f"[{prefix}] {message}")

    @property
    def text(self) -> str:
        return "\n".join(self.messages)


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("fslx.yaml", {"share": {...}})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def create_archive(tmp_test_dir: Path):
    """
    Factory fixture for creating distribution-like ZIP archives.

    Usage:
        zip_path = create_archive("FSLogix_Apps_2.9.8440.42104.zip")
    """

    def _create(
        filename: str = "FSLogix_Apps_2.9.8440.42104.zip",
        entries: dict[str, bytes] | None = None,
    ) -> Path:
        if entries is None:
            entries = {INSTALLER_ENTRY: b"MZ fake installer"}
        path = tmp_test_dir / "archives" / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            for name, data in entries.items():
                zf.writestr(name, data)
        return path

    return _create


def mark_encrypted(archive: Path) -> Path:
    """Set the encryption flag on the first entry of a single-entry ZIP.

    zipfile then refuses to read the entry without a password.
    """
    data = bytearray(archive.read_bytes())
    # general purpose flag: local header offset 6, central directory offset 8
    for signature, offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        data[data.index(signature) + offset] |= 0x01
    archive.write_bytes(bytes(data))
    return archive


def set_compression_method(archive: Path, method: int) -> Path:
    """Overwrite the compression method of the first entry of a ZIP."""
    data = bytearray(archive.read_bytes())
    # compression method: local header offset 8, central directory offset 10
    for signature, offset in ((b"PK\x03\x04", 8), (b"PK\x01\x02", 10)):
        start = data.index(signature) + offset
        data[start : start + 2] = method.to_bytes(2, "little")
    archive.write_bytes(bytes(data))
    return archive


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def agent_config(tmp_test_dir: Path) -> AgentConfig:
    """Provide a valid configuration rooted in the temp directory."""
    return AgentConfig(
        account_identifier="mystorage",
        share_name="profiles",
        secret="s3cr3t-Key==",
        work_dir=tmp_test_dir / "work",
        post_install_settle_seconds=30,
        pre_configure_settle_seconds=10,
    )
