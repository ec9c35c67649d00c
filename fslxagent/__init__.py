"""
fslxagent - FSLogix profile container deploy agent

An unattended agent that brings a Windows host to a known state for
roaming user profiles on a network file share.

fslxagent provides:
  - Installed-version detection from the uninstall registry
  - Remote version discovery from the vendor's redirecting download link
  - Install/upgrade only when the available version is newer
  - Download with retries and atomic writes, single-entry ZIP extraction
  - Silent installer execution with an exit-code allow-list
  - Share credential storage, profile registry settings and service restart
  - An append-only JSON Lines audit trail of every step

Quick Start
-----------
Deploy with a config file:

    $ fslx deploy --config fslx.yaml

Check versions only:

    $ fslx check --config fslx.yaml

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Pipeline state machine.
config : package
    YAML configuration loading and merging.
discovery : package
    Remote version discovery from the download redirect.
versioning : package
    Version parsing, comparison and the install decision.
io : package
    Download and archive extraction.
system : package
    Windows host integration (registry, installer, credentials, services).

Public API
----------
    from fslxagent.config import load_agent_config
    from fslxagent.core import deploy, check_versions
    from fslxagent.versioning import PackageVersion, decide

Project Information
-------------------
Author: Roger Cibrian
License: GPL-3.0-only
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Idempotent FSLogix install and profile container configuration agent"

from fslxagent.config import load_agent_config
from fslxagent.core import check_versions, deploy
from fslxagent.versioning import InstallDecision, PackageVersion, decide

__all__ = [
    "__version__",
    "load_agent_config",
    "deploy",
    "check_versions",
    "PackageVersion",
    "InstallDecision",
    "decide",
]
