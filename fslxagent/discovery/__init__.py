"""Remote version discovery for fslxagent.

The distribution is published behind a stable redirect URL; the version is
read from the filename the redirect points at.

Public API:

- resolve_redirect: Follow the redirect and parse the versioned filename
- RemoteDistribution: Resolved URL, version and installer entry path

"""

from .redirect import RemoteDistribution, resolve_redirect

__all__ = ["RemoteDistribution", "resolve_redirect"]
