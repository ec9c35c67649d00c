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

"""Command-line interface for fslxagent.

Commands:

    deploy: Install or upgrade the profile container agent and configure it
    check: Show installed and available versions without changing anything

Example:
    Deploy with a config file:
        ```bash
        $ fslx deploy --config fslx.yaml
        ```

    Deploy with inputs on the command line (quotes are stripped):
        ```bash
        $ fslx deploy --account mystorage --share profiles --secret "'<key>'"
        ```

    Preview a run without touching the host:
        ```bash
        $ fslx deploy --config fslx.yaml --dry-run --verbose
        ```

    Check versions:
        ```bash
        $ fslx check --config fslx.yaml
        ```

Exit Codes:

- 0: Success (including up to date and done with warnings)
- 1: Fatal error (resolution, download, extraction or install failure)
- 2: Invalid configuration

Note:
    Each command has its own handler function (cmd_<command>).
    Verbose mode shows full tracebacks on errors for debugging.
    Inputs may also come from FSLX_ACCOUNT, FSLX_SHARE and FSLX_SECRET
    (environment or a .env file).
"""

from __future__ import annotations

import argparse
from importlib.metadata import version
from pathlib import Path
import sys
from typing import Any

from fslxagent.audit import AuditTrail
from fslxagent.config import AgentConfig, load_agent_config
from fslxagent.core import check_versions, deploy
from fslxagent.exceptions import AgentError, ConfigError, NetworkError
from fslxagent.logging import RedactingLogger, get_logger, set_global_logger
from fslxagent.results import RunStatus

EXIT_CONFIG_ERROR = 2


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "share": {
            "account": args.account,
            "name": args.share,
            "secret": args.secret,
        },
        "profiles": {"size_in_mbs": getattr(args, "size_in_mbs", None)},
        "runtime": {"audit_log": getattr(args, "audit_log", None)},
    }


def _load_config(args: argparse.Namespace) -> AgentConfig | None:
    config_path = Path(args.config) if args.config else None
    try:
        return load_agent_config(config_path, overrides=_overrides_from_args(args))
    except ConfigError as err:
        print(f"Configuration error: {err}")
        return None


def cmd_deploy(args: argparse.Namespace) -> int:
    """Handler for 'fslx deploy' command.

    Runs the full pipeline: probe versions, install or upgrade when needed,
    store the share credential, write the profile settings, verify them and
    restart the profile service.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code from the run result, or 2 for invalid configuration.
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    config = _load_config(args)
    if config is None:
        return EXIT_CONFIG_ERROR

    logger = RedactingLogger(logger, secrets=[config.secret])
    set_global_logger(logger)

    print(f"Deploying profile containers to: {config.share.profile_path}")
    if args.dry_run:
        print("Dry run: no install, credential, registry or service changes")
    print()

    audit = AuditTrail(config.audit_log)
    try:
        result = deploy(config, audit=audit, dry_run=args.dry_run, logger=logger)
    except AgentError as err:
        print(f"Error: {err}")
        if args.verbose or args.debug:
            import traceback

            traceback.print_exc()
        return 1

    print()
    print("=" * 70)
    print("DEPLOYMENT RESULTS")
    print("=" * 70)
    print(f"Installed Before: {result.local_version}")
    print(f"Available:        {result.remote_version or 'unknown'}")
    print(f"Decision:         {result.decision.value if result.decision else '-'}")
    print(f"Status:           {result.status.value}")
    if config.audit_log:
        print(f"Audit Log:        {config.audit_log}")
    print("=" * 70)

    if result.warnings:
        print()
        print(f"Warnings ({len(result.warnings)}):")
        for outcome in result.warnings:
            print(f"  [WARNING] {outcome.step}: {outcome.detail}")

    print()
    if result.status is RunStatus.FAILED:
        print(f"[FAILED] {result.error}")
    elif result.status is RunStatus.DONE_WITH_WARNINGS:
        print("[SUCCESS] Deployment finished with warnings.")
    else:
        print("[SUCCESS] Deployment finished.")

    return result.exit_code


def cmd_check(args: argparse.Namespace) -> int:
    """Handler for 'fslx check' command.

    Reads the installed version, resolves the available one and prints the
    decision a deploy run would take. Nothing is downloaded or changed.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 if the available version cannot be
        resolved, 2 for invalid configuration).
    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    config = _load_config(args)
    if config is None:
        return EXIT_CONFIG_ERROR

    logger = RedactingLogger(logger, secrets=[config.secret])
    set_global_logger(logger)

    try:
        result = check_versions(config, logger=logger)
    except NetworkError as err:
        print(f"Error: {err}")
        if args.verbose or args.debug:
            import traceback

            traceback.print_exc()
        return 1

    print("=" * 70)
    print("VERSION CHECK")
    print("=" * 70)
    installed = str(result.local_version) if result.local_version.is_installed else "not installed"
    print(f"Product:         {config.product_display_name}")
    print(f"Installed:       {installed}")
    print(f"Available:       {result.remote_version}")
    print(f"Download URL:    {result.resolved_url}")
    print(f"Decision:        {result.decision.value}")
    print("=" * 70)

    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML config file (optional)",
    )
    parser.add_argument(
        "--account",
        default=None,
        help="Storage account name (env: FSLX_ACCOUNT)",
    )
    parser.add_argument(
        "--share",
        default=None,
        help="File share name (env: FSLX_SHARE)",
    )
    parser.add_argument(
        "--secret",
        default=None,
        help="Storage account key (env: FSLX_SECRET)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fslx",
        description="fslxagent - install and configure FSLogix profile containers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"fslx {version('fslxagent')}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'deploy' command
    parser_deploy = subparsers.add_parser(
        "deploy",
        help="Install or upgrade and configure profile containers",
        description="Bring the host to the desired state: latest agent installed, "
        "share credential stored, profile settings written, service restarted.",
    )
    _add_common_arguments(parser_deploy)
    parser_deploy.add_argument(
        "--size-in-mbs",
        type=int,
        default=None,
        help="Maximum profile container size in MB (default: 30000)",
    )
    parser_deploy.add_argument(
        "--audit-log",
        default=None,
        help="Append step outcomes to this JSON Lines file",
    )
    parser_deploy.add_argument(
        "--dry-run",
        action="store_true",
        help="Probe and decide only; skip install, credential, registry and service changes",
    )
    parser_deploy.set_defaults(func=cmd_deploy)

    # 'check' command
    parser_check = subparsers.add_parser(
        "check",
        help="Show installed and available versions",
        description="Compare the installed version with the one behind the download link.",
    )
    _add_common_arguments(parser_check)
    parser_check.set_defaults(func=cmd_check)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the fslx CLI.

    This function is registered as the 'fslx' console script in pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
