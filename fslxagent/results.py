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

"""Public API return types for fslxagent.

This module defines the records produced by a deployment run: one
StepOutcome per pipeline step, and a RunResult summarising the run.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from fslxagent.core import deploy

        result = deploy(config)
        for outcome in result.outcomes:
            print(outcome.step, outcome.status.value)
        raise SystemExit(result.exit_code)
        ```

Note:
    Only public API return types belong in this module. Domain types
    (like PackageVersion or ShareTarget) remain co-located with their
    related logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from fslxagent.versioning.keys import InstallDecision, PackageVersion


class StepStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class RunStatus(Enum):
    DONE = "done"
    DONE_WITH_WARNINGS = "done_with_warnings"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    """Result of a single pipeline step.

    Attributes:
        step: Step name (e.g., "resolve_remote", "write_configuration").
        status: Success, skipped, or failed.
        detail: Human-readable detail. Never contains secrets.
        error_kind: Exception class name for failed steps, else None.
        fatal: True only for the failure that aborted the run.
    """

    step: str
    status: StepStatus
    detail: str = ""
    error_kind: str | None = None
    fatal: bool = False

    @property
    def is_warning(self) -> bool:
        return self.status is StepStatus.FAILED and not self.fatal


@dataclass(frozen=True)
class RunResult:
    """Result from a complete deployment run.

    Attributes:
        status: Terminal run status.
        exit_code: Process exit code (0 unless status is FAILED).
        local_version: Version installed before the run (0.0.0.0 if none).
        remote_version: Version advertised by the redirect endpoint, or None
            when resolution failed.
        decision: Install decision taken, or None when the run failed before
            deciding.
        outcomes: Ordered step outcomes (the audit trail of the run).
        error: Message of the fatal error, if any.
    """

    status: RunStatus
    exit_code: int
    local_version: PackageVersion
    remote_version: PackageVersion | None
    decision: InstallDecision | None
    outcomes: tuple[StepOutcome, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def warnings(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if o.is_warning]


@dataclass(frozen=True)
class CheckResult:
    """Result from a read-only version check.

    Attributes:
        local_version: Installed version (0.0.0.0 if not installed).
        remote_version: Version behind the redirect endpoint.
        resolved_url: Final download URL.
        decision: What a deploy run would do.
    """

    local_version: PackageVersion
    remote_version: PackageVersion
    resolved_url: str
    decision: InstallDecision
