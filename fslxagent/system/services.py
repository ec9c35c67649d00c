"""Windows service restart for the profile service.

Configuration changes only take effect once the profile service re-reads
them, so the pipeline restarts it at the end of a run. A missing service is
not an error (the install may have failed silently); it is logged and
skipped.
"""

from __future__ import annotations

from fslxagent.exceptions import ServiceControlError
from fslxagent.logging import Logger, get_global_logger
from fslxagent.system.runner import CommandRunner, SubprocessRunner, powershell


def _quote(name: str) -> str:
    return "'" + name.replace("'", "''") + "'"


def service_exists(service_name: str, runner: CommandRunner) -> bool:
    try:
        result = runner.run(
            powershell(f"Get-Service -Name {_quote(service_name)} -ErrorAction Stop")
        )
    except OSError:
        return False
    return result.returncode == 0


def restart_service(
    service_name: str,
    *,
    runner: CommandRunner | None = None,
    logger: Logger | None = None,
) -> bool:
    """Force-restart a service.

    Returns:
        True if the service was restarted, False if it does not exist.

    Raises:
        ServiceControlError: If the restart command fails.
    """
    if logger is None:
        logger = get_global_logger()
    if runner is None:
        runner = SubprocessRunner()

    if not service_exists(service_name, runner):
        logger.warning(
            "SERVICE", f"Service {service_name!r} not found; skipping restart"
        )
        return False

    logger.verbose("SERVICE", f"Restarting {service_name}")
    try:
        result = runner.run(
            powershell(
                f"Restart-Service -Name {_quote(service_name)} -Force -ErrorAction Stop"
            )
        )
    except OSError as err:
        raise ServiceControlError(f"could not restart {service_name}: {err}") from err

    if result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise ServiceControlError(
            f"Restart-Service {service_name} failed (exit code {result.returncode}): {detail}"
        )
    logger.verbose("SERVICE", f"[OK] {service_name} restarted")
    return True
