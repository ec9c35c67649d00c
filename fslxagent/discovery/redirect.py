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

"""Redirect-based version discovery for fslxagent.

The vendor publishes a stable short link that always redirects to the
current, versioned archive (``.../FSLogix_Apps_2.9.8440.42104.zip``). This
module follows that redirect with a HEAD request and reads the version from
the final filename, so the version is known before anything is downloaded
(VERSION-FIRST).

Failure Modes (all raise ResolutionError):
    - The request fails (DNS, TLS, timeout, connection refused)
    - The final response is not 2xx
    - No redirect happened (the endpoint is no longer a redirect)
    - The final filename does not match ``<a>_<b>_<version>.zip``

Example:
    ```python
    from fslxagent.discovery import resolve_redirect

    dist = resolve_redirect(
        "https://aka.ms/fslogix_download",
        entry_path="x64/Release/FSLogixAppsSetup.exe",
    )
    print(dist.version, dist.resolved_url)
    ```
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from fslxagent.exceptions import ResolutionError
from fslxagent.io.download import make_session
from fslxagent.logging import Logger, get_global_logger
from fslxagent.versioning.keys import PackageVersion
from fslxagent.versioning.url_regex import filename_from_url, version_from_filename


@dataclass(frozen=True)
class RemoteDistribution:
    """Latest distribution advertised by the redirect endpoint.

    Attributes:
        resolved_url: Final download URL after redirects.
        version: Version parsed from the final filename.
        archive_entry_path: Installer path inside the archive.
        filename: Final filename (e.g., "FSLogix_Apps_2.9.8440.42104.zip").

    """

    resolved_url: str
    version: PackageVersion
    archive_entry_path: str
    filename: str


def resolve_redirect(
    redirect_url: str,
    *,
    entry_path: str,
    timeout: int = 30,
    session: requests.Session | None = None,
    logger: Logger | None = None,
) -> RemoteDistribution:
    """Resolve the redirect endpoint into a versioned distribution.

    Args:
        redirect_url: Stable redirect URL.
        entry_path: Installer path inside the archive (carried through).
        timeout: Per-request timeout (seconds).
        session: Pre-built session (tests); one is created otherwise.
        logger: Logger; the global logger is used when omitted.

    Returns:
        RemoteDistribution for the current release.

    Raises:
        ResolutionError: See module docstring.
    """
    if logger is None:
        logger = get_global_logger()

    own_session = session is None
    if session is None:
        session = make_session(retries=2, backoff_factor=1.0)

    logger.verbose("DISCOVERY", f"HEAD {redirect_url}")
    try:
        resp = session.head(redirect_url, allow_redirects=True, timeout=timeout)
    except requests.RequestException as err:
        raise ResolutionError(
            f"could not resolve redirect {redirect_url}: {err}"
        ) from err
    finally:
        if own_session:
            session.close()

    for hist in resp.history:
        logger.debug(
            "DISCOVERY",
            f"Redirect {hist.status_code} -> {hist.headers.get('Location', 'unknown')}",
        )

    if not resp.history:
        raise ResolutionError(f"no redirect received from {redirect_url}")

    if not 200 <= resp.status_code < 300:
        raise ResolutionError(
            f"redirect target {resp.url} returned HTTP {resp.status_code}"
        )

    filename = filename_from_url(resp.url)
    try:
        version = version_from_filename(filename)
    except ValueError as err:
        raise ResolutionError(
            f"unexpected distribution filename at {resp.url}: {err}"
        ) from err

    logger.verbose("DISCOVERY", f"Remote version: {version} ({filename})")
    return RemoteDistribution(
        resolved_url=resp.url,
        version=version,
        archive_entry_path=entry_path,
        filename=filename,
    )
