"""
Filename version extraction for fslxagent.

The distribution endpoint redirects to a versioned filename such as
``FSLogix_Apps_2.9.8440.42104.zip``. This module turns that filename (or the
full redirect target URL) into a PackageVersion without downloading anything.

Filename Contract
-----------------
``<prefix>_<prefix2>_<major.minor.build.revision>.zip``

The filename is split on ``_``; the last segment minus the ``.zip``
extension must be a 4-part numeric version.

Examples
--------
    >>> from fslxagent.versioning.url_regex import version_from_filename
    >>> str(version_from_filename("FSLogix_Apps_2.9.8440.42104.zip"))
    '2.9.8440.42104'

    >>> from fslxagent.versioning.url_regex import filename_from_url
    >>> filename_from_url("https://download.example.com/pr/FSLogix_Apps_2.9.8440.42104.zip")
    'FSLogix_Apps_2.9.8440.42104.zip'

Notes
-----
- This is pure string extraction; no network calls are made
- Mismatches raise ValueError; callers translate that into their own error
"""

from __future__ import annotations

from pathlib import PurePosixPath
import re
from urllib.parse import unquote, urlparse

from fslxagent.versioning.keys import PackageVersion

FILENAME_PATTERN = re.compile(
    r"^[^_]+_[^_]+_(?P<version>\d+\.\d+\.\d+\.\d+)\.zip$", re.IGNORECASE
)


def filename_from_url(url: str) -> str:
    """Return the last path segment of a URL (percent-decoded)."""
    return PurePosixPath(unquote(urlparse(url).path)).name


def version_from_filename(filename: str) -> PackageVersion:
    """
    Extract the package version encoded in a distribution filename.

    Parameters
    ----------
    filename : str
        Bare filename, e.g. ``FSLogix_Apps_2.9.8440.42104.zip``.

    Returns
    -------
    PackageVersion
        The parsed version.

    Raises
    ------
    ValueError
        If the filename does not follow the ``<a>_<b>_<version>.zip`` form.
    """
    m = FILENAME_PATTERN.match(filename)
    if not m:
        raise ValueError(
            f"filename does not match '<prefix>_<prefix>_<version>.zip': {filename!r}"
        )
    return PackageVersion.parse(m.group("version"))


def version_from_url(url: str) -> PackageVersion:
    """Extract the package version from the final filename of a URL."""
    return version_from_filename(filename_from_url(url))
