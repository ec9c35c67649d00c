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

"""Core orchestration for fslxagent.

This module sequences a complete deployment run: version probing, the
conditional install, and the post-install configuration of the profile
service.

State Machine:

    INIT -> PROBING_VERSIONS -> DECIDING -> [INSTALLING] -> CONFIGURING
         -> VERIFYING -> RESTARTING -> CLEANUP -> DONE | FAILED

- **PROBING_VERSIONS**: Read the installed version and resolve the remote
    one. If the remote cannot be resolved but something is installed, the
    run degrades to "keep existing install" with a warning. If nothing is
    installed the run fails: there is nothing safe to do.
- **DECIDING**: Install when the remote version is newer (or nothing is
    installed); otherwise go straight to configuration.
- **INSTALLING**: Download the archive, extract the installer, run it
    silently and wait for the service to settle. Any failure here is fatal.
- **CONFIGURING / VERIFYING / RESTARTING**: Connectivity pre-flight,
    credential storage, registry writes, read-back verification and the
    service restart. Failures are recorded as warnings and the run
    continues, leaving the machine in the best achievable state.
- **CLEANUP**: Always runs, on every exit path. Removes the downloaded
    archive but keeps the extracted installer for troubleshooting.

Fatal vs. non-fatal is decided in one place (FATAL_ERRORS); components just
raise their own error types.

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from fslxagent.config import load_agent_config
        from fslxagent.core import deploy

        config = load_agent_config(Path("fslx.yaml"))
        result = deploy(config)
        print(result.status.value)
        raise SystemExit(result.exit_code)
        ```
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path
import time

from fslxagent.audit import AuditTrail
from fslxagent.config.loader import AgentConfig
from fslxagent.discovery.redirect import RemoteDistribution, resolve_redirect
from fslxagent.exceptions import (
    AgentError,
    ArchiveCorruptError,
    ArchiveEntryNotFound,
    DownloadError,
    InstallFailed,
    ResolutionError,
    SystemConfigError,
    UnreachableResource,
)
from fslxagent.io.archive import extract_entry
from fslxagent.io.download import download_file
from fslxagent.logging import Logger, get_global_logger
from fslxagent.results import CheckResult, RunResult, RunStatus, StepOutcome, StepStatus
from fslxagent.system.credentials import Credential, persist_credential
from fslxagent.system.installer import check_exit_code, run_silent
from fslxagent.system.network import check_port
from fslxagent.system.registry import (
    ConfigurationSet,
    InMemoryRegistry,
    RegistryAccessor,
    WindowsRegistryAccessor,
    apply_configuration,
    build_configuration_set,
    verify_configuration,
)
from fslxagent.system.runner import CommandRunner, SubprocessRunner
from fslxagent.system.services import restart_service
from fslxagent.system.uninstall import RegistryVersionProbe, VersionProbe
from fslxagent.versioning.keys import InstallDecision, PackageVersion, decide

# Errors that abort a run. Everything else is recorded and the run continues.
FATAL_ERRORS: tuple[type[AgentError], ...] = (
    ResolutionError,
    DownloadError,
    ArchiveEntryNotFound,
    ArchiveCorruptError,
    InstallFailed,
)

TOTAL_STEPS = 6


class PipelineState(Enum):
    INIT = "init"
    PROBING_VERSIONS = "probing_versions"
    DECIDING = "deciding"
    INSTALLING = "installing"
    CONFIGURING = "configuring"
    VERIFYING = "verifying"
    RESTARTING = "restarting"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


class DeploymentPipeline:
    """One run of the install-and-configure pipeline.

    All host interactions are injectable so the pipeline can be exercised
    with fakes. Defaults talk to the real host.

    Attributes:
        config: Effective agent configuration.
        state: Current PipelineState.
        transitions: Every state entered, in order.
        audit: Audit trail receiving one StepOutcome per step.
    """

    def __init__(
        self,
        config: AgentConfig,
        *,
        probe: VersionProbe | None = None,
        resolver: Callable[..., RemoteDistribution] = resolve_redirect,
        fetcher: Callable[..., Path] = download_file,
        extractor: Callable[..., Path] = extract_entry,
        runner: CommandRunner | None = None,
        registry: RegistryAccessor | None = None,
        port_check: Callable[..., bool] = check_port,
        sleep: Callable[[float], None] = time.sleep,
        audit: AuditTrail | None = None,
        dry_run: bool = False,
        logger: Logger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_global_logger()
        self.probe = probe or RegistryVersionProbe(logger=self.logger)
        self.resolver = resolver
        self.fetcher = fetcher
        self.extractor = extractor
        self.runner = runner or SubprocessRunner()
        self.dry_run = dry_run
        if registry is None:
            registry = InMemoryRegistry() if dry_run else WindowsRegistryAccessor()
        self.registry = registry
        self.port_check = port_check
        self.sleep = sleep
        self.audit = audit or AuditTrail(config.audit_log)

        self.state = PipelineState.INIT
        self.transitions: list[PipelineState] = [PipelineState.INIT]
        self.local_version = PackageVersion.NOT_INSTALLED
        self.remote: RemoteDistribution | None = None
        self.decision: InstallDecision | None = None
        self.archive_path: Path | None = None
        self.installer_path: Path | None = None
        self.config_set: ConfigurationSet = build_configuration_set(config)

    # ------------------------------------------------------------------ #
    # Bookkeeping
    # ------------------------------------------------------------------ #

    def _enter(self, state: PipelineState) -> None:
        self.logger.debug("PIPELINE", f"{self.state.value} -> {state.value}")
        self.state = state
        self.transitions.append(state)

    def _record(
        self,
        step: str,
        status: StepStatus,
        detail: str = "",
        error: BaseException | None = None,
        fatal: bool = False,
    ) -> StepOutcome:
        outcome = StepOutcome(
            step=step,
            status=status,
            detail=detail,
            error_kind=type(error).__name__ if error is not None else None,
            fatal=fatal,
        )
        return self.audit.record(outcome)

    def _warn(self, step: str, error: BaseException, prefix: str) -> None:
        self.logger.warning(prefix, str(error))
        self._record(step, StepStatus.FAILED, str(error), error)

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def _probe_versions(self) -> None:
        cfg = self.config
        self.logger.step(1, TOTAL_STEPS, "Probing installed and remote versions...")

        self.local_version = self.probe.current_version(cfg.product_display_name)
        self._record(
            "probe_local",
            StepStatus.SUCCESS,
            f"{cfg.product_display_name} {self.local_version}"
            if self.local_version.is_installed
            else f"{cfg.product_display_name} not installed",
        )

        try:
            self.remote = self.resolver(
                cfg.redirect_url,
                entry_path=cfg.installer_entry,
                timeout=cfg.http_timeout,
                logger=self.logger,
            )
        except ResolutionError as err:
            if not self.local_version.is_installed:
                raise
            self.logger.warning(
                "DISCOVERY",
                f"{err}; keeping installed version {self.local_version}",
            )
            self._record("resolve_remote", StepStatus.FAILED, str(err), err)
            return

        self._record(
            "resolve_remote",
            StepStatus.SUCCESS,
            f"{self.remote.version} at {self.remote.resolved_url}",
        )

    def _decide(self) -> None:
        self.logger.step(2, TOTAL_STEPS, "Deciding...")
        if self.remote is None:
            self.decision = InstallDecision.SKIP_UP_TO_DATE
            detail = "remote version unknown; keeping existing install"
        else:
            self.decision = decide(self.local_version, self.remote.version)
            detail = f"local {self.local_version}, remote {self.remote.version}"
        self.logger.verbose("PIPELINE", f"Decision: {self.decision.value} ({detail})")
        self._record("decide", StepStatus.SUCCESS, f"{self.decision.value}: {detail}")

    def _install(self) -> None:
        cfg = self.config
        if self.remote is None:
            raise ResolutionError("cannot install without a resolved remote version")
        self.logger.step(3, TOTAL_STEPS, f"Installing {self.remote.version}...")

        if self.dry_run:
            self._record("install", StepStatus.SKIPPED, "dry run")
            return

        self.archive_path = self.fetcher(
            self.remote.resolved_url,
            cfg.download_dir,
            timeout=cfg.http_timeout,
            retries=cfg.download_retries,
            logger=self.logger,
        )
        self._record("download", StepStatus.SUCCESS, str(self.archive_path))

        self.installer_path = self.extractor(
            self.archive_path,
            self.remote.archive_entry_path,
            cfg.extract_dir,
            logger=self.logger,
        )
        self._record("extract", StepStatus.SUCCESS, str(self.installer_path))

        code = run_silent(
            self.installer_path,
            cfg.install_args,
            runner=self.runner,
            logger=self.logger,
        )
        check_exit_code(code, cfg.accepted_exit_codes)
        self._record("install", StepStatus.SUCCESS, f"exit code {code}")

        if cfg.post_install_settle_seconds > 0:
            self.logger.verbose(
                "PIPELINE",
                f"Waiting {cfg.post_install_settle_seconds}s for the service to initialize",
            )
            self.sleep(cfg.post_install_settle_seconds)

    def _configure(self) -> None:
        cfg = self.config
        share = cfg.share
        self.logger.step(4, TOTAL_STEPS, "Configuring profile settings...")

        if cfg.pre_configure_settle_seconds > 0:
            self.sleep(cfg.pre_configure_settle_seconds)

        if self.port_check(share.server_fqdn, cfg.smb_port, cfg.connect_timeout):
            self._record(
                "check_connectivity",
                StepStatus.SUCCESS,
                f"{share.server_fqdn}:{cfg.smb_port} reachable",
            )
        else:
            self._warn(
                "check_connectivity",
                UnreachableResource(
                    f"{share.server_fqdn} is not reachable on TCP {cfg.smb_port}. "
                    f"Port {cfg.smb_port} is often blocked by ISP or firewall egress "
                    "rules; profiles on the share will not load until it is opened."
                ),
                "NETWORK",
            )

        if self.dry_run:
            self._record("persist_credential", StepStatus.SKIPPED, "dry run")
        else:
            credential = Credential(
                target_name=share.server_fqdn,
                principal=cfg.principal,
                secret=cfg.secret,
            )
            try:
                persist_credential(credential, runner=self.runner, logger=self.logger)
            except SystemConfigError as err:
                self._warn("persist_credential", err, "CREDENTIAL")
            else:
                self._record(
                    "persist_credential",
                    StepStatus.SUCCESS,
                    f"{share.server_fqdn} as {cfg.principal}",
                )

        errors = apply_configuration(
            self.config_set, cfg.registry_path, self.registry, logger=self.logger
        )
        if errors:
            keys = ", ".join(e.key for e in errors)
            self._record(
                "write_configuration",
                StepStatus.FAILED,
                f"{len(errors)} of {len(self.config_set)} value(s) failed: {keys}",
                errors[0],
            )
        else:
            self._record(
                "write_configuration",
                StepStatus.SUCCESS,
                f"{len(self.config_set)} value(s) written to {cfg.registry_path}",
            )

    def _verify(self) -> None:
        self.logger.step(5, TOTAL_STEPS, "Verifying profile settings...")
        mismatched = verify_configuration(
            self.config_set, self.config.registry_path, self.registry
        )
        if mismatched:
            self.logger.warning("VERIFY", f"Values not in desired state: {', '.join(mismatched)}")
            self._record(
                "verify_configuration",
                StepStatus.FAILED,
                f"not in desired state: {', '.join(mismatched)}",
                SystemConfigError("verification failed"),
            )
        else:
            self._record("verify_configuration", StepStatus.SUCCESS, "all values match")

    def _restart(self) -> None:
        name = self.config.service_name
        self.logger.step(6, TOTAL_STEPS, f"Restarting {name}...")
        if self.dry_run:
            self._record("restart_service", StepStatus.SKIPPED, "dry run")
            return
        try:
            restarted = restart_service(name, runner=self.runner, logger=self.logger)
        except SystemConfigError as err:
            self._warn("restart_service", err, "SERVICE")
            return
        if restarted:
            self._record("restart_service", StepStatus.SUCCESS, f"{name} restarted")
        else:
            self._record("restart_service", StepStatus.SKIPPED, f"{name} not installed")

    def _cleanup(self) -> None:
        if self.archive_path is None or not self.archive_path.exists():
            self._record("cleanup", StepStatus.SKIPPED, "no archive to remove")
            return
        try:
            self.archive_path.unlink()
        except OSError as err:
            self.logger.warning("CLEANUP", f"Could not remove {self.archive_path}: {err}")
            self._record("cleanup", StepStatus.FAILED, str(err), err)
            return
        self.logger.verbose("CLEANUP", f"Removed {self.archive_path}")
        self._record("cleanup", StepStatus.SUCCESS, f"removed {self.archive_path.name}")

    # ------------------------------------------------------------------ #
    # Run
    # ------------------------------------------------------------------ #

    def run(self) -> RunResult:
        """Run the pipeline to a terminal state.

        Returns:
            RunResult. Fatal errors are reported through the result (status
            FAILED, exit code 1); they are not raised.
        """
        fatal: Exception | None = None
        try:
            self._enter(PipelineState.PROBING_VERSIONS)
            self._probe_versions()

            self._enter(PipelineState.DECIDING)
            self._decide()

            if self.decision is not InstallDecision.SKIP_UP_TO_DATE:
                self._enter(PipelineState.INSTALLING)
                self._install()

            self._enter(PipelineState.CONFIGURING)
            self._configure()

            self._enter(PipelineState.VERIFYING)
            self._verify()

            self._enter(PipelineState.RESTARTING)
            self._restart()
        except FATAL_ERRORS as err:
            fatal = err
            step = {
                PipelineState.PROBING_VERSIONS: "resolve_remote",
                PipelineState.INSTALLING: "install",
            }.get(self.state, self.state.value)
            self.logger.warning("PIPELINE", f"Fatal error during {step}: {err}")
            self._record(step, StepStatus.FAILED, str(err), err, fatal=True)
        except Exception as err:
            fatal = err
            step = self.state.value
            self.logger.warning(
                "PIPELINE", f"Unexpected {type(err).__name__} during {step}: {err}"
            )
            self._record(step, StepStatus.FAILED, str(err), err, fatal=True)
        finally:
            self._enter(PipelineState.CLEANUP)
            self._cleanup()

        if fatal is not None:
            self._enter(PipelineState.FAILED)
            status, exit_code = RunStatus.FAILED, 1
        else:
            self._enter(PipelineState.DONE)
            status = (
                RunStatus.DONE_WITH_WARNINGS if self.audit.has_warnings else RunStatus.DONE
            )
            exit_code = 0

        self.logger.verbose("PIPELINE", f"Run finished: {status.value}")
        return RunResult(
            status=status,
            exit_code=exit_code,
            local_version=self.local_version,
            remote_version=self.remote.version if self.remote else None,
            decision=self.decision,
            outcomes=tuple(self.audit.outcomes),
            error=str(fatal) if fatal is not None else None,
        )


def deploy(config: AgentConfig, **kwargs) -> RunResult:
    """Run the full pipeline for a configuration.

    Keyword arguments are passed to DeploymentPipeline (fakes, dry_run, ...).
    """
    return DeploymentPipeline(config, **kwargs).run()


def check_versions(
    config: AgentConfig,
    *,
    probe: VersionProbe | None = None,
    resolver: Callable[..., RemoteDistribution] = resolve_redirect,
    logger: Logger | None = None,
) -> CheckResult:
    """Report what a deploy run would decide, without changing anything.

    Raises:
        ResolutionError: If the redirect endpoint cannot be resolved.
    """
    if logger is None:
        logger = get_global_logger()
    if probe is None:
        probe = RegistryVersionProbe(logger=logger)

    local = probe.current_version(config.product_display_name)
    remote = resolver(
        config.redirect_url,
        entry_path=config.installer_entry,
        timeout=config.http_timeout,
        logger=logger,
    )
    return CheckResult(
        local_version=local,
        remote_version=remote.version,
        resolved_url=remote.resolved_url,
        decision=decide(local, remote.version),
    )
