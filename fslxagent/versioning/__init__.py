"""
Version parsing and install decisions for fslxagent.

Modules
-------
keys : module
    PackageVersion (4-part numeric version) and the install decision.
url_regex : module
    Extract versions from versioned distribution filenames and URLs.

Public API
----------
PackageVersion : dataclass
    Immutable, totally ordered major.minor.build.revision version.
InstallDecision : enum
    SKIP_UP_TO_DATE, INSTALL_MISSING or UPGRADE_AVAILABLE.
compare_versions : function
    Compare two versions, returning -1, 0, or 1.
decide : function
    Decide whether the remote version should be installed.
version_from_filename : function
    Parse the version out of ``<prefix>_<prefix2>_<version>.zip``.

Examples
--------
    >>> from fslxagent.versioning import PackageVersion, decide
    >>> decide(PackageVersion.parse("2.9.8000.0"), PackageVersion.parse("2.9.8440.42104"))
    <InstallDecision.UPGRADE_AVAILABLE: 'upgrade_available'>
"""

from .keys import InstallDecision, PackageVersion, compare_versions, decide
from .url_regex import filename_from_url, version_from_filename, version_from_url

__all__ = [
    "InstallDecision",
    "PackageVersion",
    "compare_versions",
    "decide",
    "filename_from_url",
    "version_from_filename",
    "version_from_url",
]
