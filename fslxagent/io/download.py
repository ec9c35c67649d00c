"""
Robust HTTP(S) file download for fslxagent.

This module fetches the distribution archive behind the resolved redirect.

Key Features:

- **Retry Logic with Backoff** - Retries connection errors, read errors and
  transient statuses (429, 500, 502, 503, 504) through urllib3.util.Retry.
  At least one retry is always configured.
- **Atomic Writes** - Downloads to a temporary .part file and renames on
  success, so a half-downloaded archive never appears under its real name.
- **Integrity Digest** - SHA-256 is computed while streaming and logged for
  troubleshooting.
- **Stable Encoding** - Forces Accept-Encoding: identity; the archive is
  already compressed.

Constants:

- DEFAULT_CHUNK (int): Stream chunk size (1 MiB).

Example:
    Basic download:

        >>> from pathlib import Path
        >>> from fslxagent.io import download_file
        >>> path = download_file(
        ...     "https://download.example.com/FSLogix_Apps_2.9.8440.42104.zip",
        ...     Path("./downloads"),
        ... )

Notes:
- Timeouts are per-request, not total download time
- All failures surface as DownloadError with the cause chained
"""

from __future__ import annotations

import hashlib
from pathlib import Path
import time

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fslxagent.exceptions import DownloadError
from fslxagent.logging import Logger, get_global_logger
from fslxagent.versioning.url_regex import filename_from_url

# Stream size per chunk (1 MiB).
DEFAULT_CHUNK = 1024 * 1024

USER_AGENT = "fslxagent/0.1"


def make_session(retries: int = 3, backoff_factor: float = 2.0) -> requests.Session:
    """
    Create a requests.Session with retry/backoff defaults.

    - Retries connection and read failures as well as transient statuses.
    - Applies backoff between attempts (backoff_factor * 2 ** (n - 1)).
    - Sets a User-Agent and pins identity encoding.

    Args:
        retries: Number of retries after the first attempt (minimum 1).
        backoff_factor: Base backoff in seconds.
    """
    s = requests.Session()
    retry = Retry(
        total=max(1, retries),
        connect=max(1, retries),
        read=max(1, retries),
        backoff_factor=backoff_factor,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
        raise_on_status=False,
    )
    s.headers.update(
        {
            "User-Agent": USER_AGENT,
            "Accept-Encoding": "identity",
        }
    )
    s.mount("http://", HTTPAdapter(max_retries=retry))
    s.mount("https://", HTTPAdapter(max_retries=retry))
    return s


def download_file(
    url: str,
    destination_folder: Path,
    *,
    timeout: int = 60,
    retries: int = 3,
    backoff_factor: float = 2.0,
    session: requests.Session | None = None,
    logger: Logger | None = None,
) -> Path:
    """Download a URL into destination_folder.

    Follows redirects and retries transient failures. Writes to
    <filename>.part then renames to <filename> on success, replacing any
    previous copy.

    Args:
        url: Source URL (normally the resolved, versioned download URL).
        destination_folder: Folder to save into (created if missing).
        timeout: Per-request timeout (seconds).
        retries: Retries after the first attempt (minimum 1).
        backoff_factor: Base backoff between retries (seconds).
        session: Pre-built session (tests); one is created otherwise.
        logger: Logger; the global logger is used when omitted.

    Returns:
        Path to the downloaded file.

    Raises:
        DownloadError: On connection failures after retries, non-2xx final
            status, or local write errors.
    """
    if logger is None:
        logger = get_global_logger()

    destination_folder = Path(destination_folder)
    destination_folder.mkdir(parents=True, exist_ok=True)

    own_session = session is None
    if session is None:
        session = make_session(retries=retries, backoff_factor=backoff_factor)

    logger.verbose("HTTP", f"GET {url}")
    tmp: Path | None = None
    try:
        try:
            resp = session.get(url, stream=True, allow_redirects=True, timeout=timeout)
        except requests.RequestException as err:
            raise DownloadError(f"download failed for {url}: {err}") from err

        with resp:
            for hist in resp.history:
                logger.verbose(
                    "HTTP",
                    f"Redirect {hist.status_code} -> {hist.headers.get('Location', 'unknown')}",
                )

            if not 200 <= resp.status_code < 300:
                raise DownloadError(
                    f"download failed for {url}: HTTP {resp.status_code} {resp.reason}"
                )

            logger.verbose("HTTP", f"Response: {resp.status_code} {resp.reason}")

            filename = filename_from_url(resp.url) or "download.bin"
            target = destination_folder / filename
            tmp = target.with_suffix(target.suffix + ".part")
            logger.verbose("FILE", f"Downloading to: {tmp}")

            sha = hashlib.sha256()
            started_at = time.time()
            try:
                with tmp.open("wb") as f:
                    for chunk in resp.iter_content(chunk_size=DEFAULT_CHUNK):
                        if not chunk:
                            continue
                        f.write(chunk)
                        sha.update(chunk)
            except requests.RequestException as err:
                raise DownloadError(f"download interrupted for {url}: {err}") from err
            except OSError as err:
                raise DownloadError(f"could not write {tmp}: {err}") from err

        try:
            tmp.replace(target)
        except OSError as err:
            raise DownloadError(f"could not replace {target}: {err}") from err
        tmp = None
        elapsed = time.time() - started_at
        logger.verbose("FILE", f"SHA-256: {sha.hexdigest()}")
        logger.verbose("FILE", f"Download complete: {target} in {elapsed:.1f}s")
        return target
    finally:
        if tmp is not None and tmp.exists():
            tmp.unlink()
        if own_session:
            session.close()
