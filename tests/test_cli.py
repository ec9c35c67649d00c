"""
Tests for fslxagent.cli module.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from fslxagent import cli
from fslxagent.exceptions import ResolutionError
from fslxagent.results import CheckResult, RunResult, RunStatus, StepOutcome, StepStatus
from fslxagent.versioning import InstallDecision, PackageVersion

pytestmark = pytest.mark.unit

INPUTS = ["--account", "mystorage", "--share", "profiles", "--secret", "key=="]


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for name in ("FSLX_ACCOUNT", "FSLX_SHARE", "FSLX_SECRET"):
        monkeypatch.delenv(name, raising=False)


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


def _result(status: RunStatus, exit_code: int, outcomes=()) -> RunResult:
    return RunResult(
        status=status,
        exit_code=exit_code,
        local_version=PackageVersion.parse("2.9.8000.0"),
        remote_version=PackageVersion.parse("2.9.8440.42104"),
        decision=InstallDecision.UPGRADE_AVAILABLE,
        outcomes=tuple(outcomes),
        error="installer failed with exit code 1603" if exit_code else None,
    )


class TestDeployCommand:
    """Tests for 'fslx deploy'."""

    def test_success(self, capsys):
        with patch("fslxagent.cli.deploy", return_value=_result(RunStatus.DONE, 0)) as mock:
            assert _run(["deploy", *INPUTS]) == 0

        config = mock.call_args.args[0]
        assert config.account_identifier == "mystorage"
        assert mock.call_args.kwargs["dry_run"] is False
        out = capsys.readouterr().out
        assert "DEPLOYMENT RESULTS" in out
        assert "[SUCCESS] Deployment finished." in out
        assert "key==" not in out

    def test_warnings_are_listed(self, capsys):
        outcomes = [
            StepOutcome("check_connectivity", StepStatus.FAILED, "TCP 445 blocked"),
        ]
        result = _result(RunStatus.DONE_WITH_WARNINGS, 0, outcomes)
        with patch("fslxagent.cli.deploy", return_value=result):
            assert _run(["deploy", *INPUTS]) == 0

        out = capsys.readouterr().out
        assert "[WARNING] check_connectivity: TCP 445 blocked" in out
        assert "finished with warnings" in out

    def test_failure_exit_code(self, capsys):
        with patch("fslxagent.cli.deploy", return_value=_result(RunStatus.FAILED, 1)):
            assert _run(["deploy", *INPUTS]) == 1

        assert "[FAILED] installer failed with exit code 1603" in capsys.readouterr().out

    def test_options_reach_config(self, tmp_test_dir):
        audit = tmp_test_dir / "audit.jsonl"
        with patch("fslxagent.cli.deploy", return_value=_result(RunStatus.DONE, 0)) as mock:
            _run(
                [
                    "deploy",
                    *INPUTS,
                    "--size-in-mbs",
                    "5000",
                    "--audit-log",
                    str(audit),
                    "--dry-run",
                ]
            )

        config = mock.call_args.args[0]
        assert config.size_in_mbs == 5000
        assert config.audit_log == audit
        assert mock.call_args.kwargs["dry_run"] is True

    def test_missing_inputs_exit_2(self, capsys):
        with patch("fslxagent.cli.deploy") as mock:
            assert _run(["deploy", "--account", "mystorage"]) == 2

        mock.assert_not_called()
        assert "Missing required configuration" in capsys.readouterr().out

    def test_config_file(self, create_yaml_file):
        path = create_yaml_file(
            "fslx.yaml",
            {"share": {"account": "fromfile", "name": "profiles", "secret": "k"}},
        )
        with patch("fslxagent.cli.deploy", return_value=_result(RunStatus.DONE, 0)) as mock:
            assert _run(["deploy", "--config", str(path)]) == 0

        assert mock.call_args.args[0].account_identifier == "fromfile"


class TestCheckCommand:
    """Tests for 'fslx check'."""

    def test_prints_decision(self, capsys):
        result = CheckResult(
            local_version=PackageVersion.NOT_INSTALLED,
            remote_version=PackageVersion.parse("2.9.8440.42104"),
            resolved_url="https://download.example.com/FSLogix_Apps_2.9.8440.42104.zip",
            decision=InstallDecision.INSTALL_MISSING,
        )
        with patch("fslxagent.cli.check_versions", return_value=result):
            assert _run(["check", *INPUTS]) == 0

        out = capsys.readouterr().out
        assert "not installed" in out
        assert "install_missing" in out

    def test_resolution_failure(self, capsys):
        with patch(
            "fslxagent.cli.check_versions", side_effect=ResolutionError("no redirect")
        ):
            assert _run(["check", *INPUTS]) == 1

        assert "Error: no redirect" in capsys.readouterr().out


def test_command_is_required(capsys):
    assert _run([]) == 2
