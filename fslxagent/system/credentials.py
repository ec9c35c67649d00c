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

"""Persistent network credential storage via Windows Credential Manager.

Stores the share credential with ``cmdkey.exe`` so that the profile service
can reach the share unattended. Adding a credential for a target that
already exists replaces it, so repeated runs are idempotent.

The secret never appears in logs: commands are logged with the ``/pass:``
argument redacted, and Credential excludes it from repr.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from fslxagent.exceptions import CredentialPersistError
from fslxagent.logging import Logger, get_global_logger
from fslxagent.system.runner import CommandRunner, SubprocessRunner

REDACTED = "********"


@dataclass(frozen=True)
class Credential:
    """A network credential keyed by server identity.

    Attributes:
        target_name: Server FQDN the credential applies to.
        principal: Username (e.g., ``localhost\\mystorage``).
        secret: Password or storage key. Excluded from repr.
    """

    target_name: str
    principal: str
    secret: str = field(repr=False)


def _redact(cmd: Sequence[str]) -> str:
    return " ".join(
        f"/pass:{REDACTED}" if part.lower().startswith("/pass:") else part
        for part in cmd
    )


def persist_credential(
    credential: Credential,
    *,
    runner: CommandRunner | None = None,
    logger: Logger | None = None,
) -> None:
    """Store a credential in the Windows Credential Manager.

    Raises:
        CredentialPersistError: If cmdkey cannot be started or exits nonzero.
    """
    if logger is None:
        logger = get_global_logger()
    if runner is None:
        runner = SubprocessRunner()

    cmd = [
        "cmdkey.exe",
        f"/add:{credential.target_name}",
        f"/user:{credential.principal}",
        f"/pass:{credential.secret}",
    ]
    logger.verbose("CREDENTIAL", f"Running: {_redact(cmd)}")

    try:
        result = runner.run(cmd)
    except OSError as err:
        raise CredentialPersistError(f"could not start cmdkey.exe: {err}") from err

    if result.returncode != 0:
        output = (result.stderr or result.stdout or "").strip()
        output = output.replace(credential.secret, REDACTED) if credential.secret else output
        raise CredentialPersistError(
            f"cmdkey.exe failed for {credential.target_name} "
            f"(exit code {result.returncode}): {output}"
        )
    logger.verbose("CREDENTIAL", f"Stored credential for {credential.target_name}")
