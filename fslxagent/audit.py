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

"""Append-only audit trail of pipeline steps.

Each StepOutcome is kept in memory and, when a path is configured, appended
to a JSON Lines file (one object per line). Existing lines are never
rewritten, so successive runs accumulate in the same file.

Example:
    ```python
    from pathlib import Path
    from fslxagent.audit import AuditTrail

    trail = AuditTrail(Path("logs/fslx-audit.jsonl"))
    trail.record(StepOutcome("probe_local", StepStatus.SUCCESS, "2.9.8000.0"))
    ```

Record layout:
    {"timestamp": "...", "run_id": "...", "step": "...", "status": "...",
     "detail": "...", "error_kind": null, "fatal": false}
"""

from __future__ import annotations

from datetime import UTC, datetime
import json
from pathlib import Path
import uuid

from fslxagent.results import StepOutcome


class AuditTrail:
    """Run-scoped ordered sequence of step outcomes.

    Attributes:
        path: JSON Lines file to append to, or None for memory only.
        run_id: Identifier shared by all records of this run.
        outcomes: Outcomes recorded so far, in order.
    """

    def __init__(self, path: Path | None = None, run_id: str | None = None) -> None:
        self.path = path
        self.run_id = run_id or uuid.uuid4().hex
        self.outcomes: list[StepOutcome] = []

    def record(self, outcome: StepOutcome) -> StepOutcome:
        self.outcomes.append(outcome)
        if self.path is not None:
            entry = {
                "timestamp": datetime.now(UTC).isoformat(),
                "run_id": self.run_id,
                "step": outcome.step,
                "status": outcome.status.value,
                "detail": outcome.detail,
                "error_kind": outcome.error_kind,
                "fatal": outcome.fatal,
            }
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
        return outcome

    @property
    def has_warnings(self) -> bool:
        return any(o.is_warning for o in self.outcomes)


def read_audit_log(path: Path) -> list[dict]:
    """Load every record from an audit log file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If a line is not valid JSON.
    """
    with path.open("r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]
