"""
Tests for fslxagent.discovery.redirect.

Tests remote version resolution including:
- Following the redirect to a versioned filename
- Missing redirect
- Unexpected filenames
- Request failures and error statuses
"""

from __future__ import annotations

import pytest
import requests
import requests_mock

from fslxagent.discovery import RemoteDistribution, resolve_redirect
from fslxagent.exceptions import ResolutionError
from fslxagent.versioning import PackageVersion

pytestmark = pytest.mark.unit

REDIRECT = "https://aka.example.com/fslogix_download"
FINAL = "https://download.example.com/pr/FSLogix_Apps_2.9.8440.42104.zip"
ENTRY = "x64/Release/FSLogixAppsSetup.exe"


class TestResolveRedirect:
    """Tests for resolve_redirect."""

    def test_resolves_version_from_final_filename(self):
        with requests_mock.Mocker() as m:
            m.head(REDIRECT, status_code=302, headers={"Location": FINAL})
            m.head(FINAL, status_code=200)
            dist = resolve_redirect(REDIRECT, entry_path=ENTRY)

        assert isinstance(dist, RemoteDistribution)
        assert dist.resolved_url == FINAL
        assert dist.version == PackageVersion(2, 9, 8440, 42104)
        assert dist.filename == "FSLogix_Apps_2.9.8440.42104.zip"
        assert dist.archive_entry_path == ENTRY

    def test_uses_head_request(self):
        with requests_mock.Mocker() as m:
            m.head(REDIRECT, status_code=302, headers={"Location": FINAL})
            m.head(FINAL, status_code=200)
            resolve_redirect(REDIRECT, entry_path=ENTRY)

        assert [r.method for r in m.request_history] == ["HEAD", "HEAD"]

    def test_no_redirect_raises(self):
        with requests_mock.Mocker() as m:
            m.head(REDIRECT, status_code=200)

            with pytest.raises(ResolutionError, match="no redirect"):
                resolve_redirect(REDIRECT, entry_path=ENTRY)

    def test_unexpected_filename_raises(self):
        final = "https://download.example.com/pr/FSLogixSetup.zip"
        with requests_mock.Mocker() as m:
            m.head(REDIRECT, status_code=302, headers={"Location": final})
            m.head(final, status_code=200)

            with pytest.raises(ResolutionError, match="unexpected distribution filename"):
                resolve_redirect(REDIRECT, entry_path=ENTRY)

    def test_error_status_at_target_raises(self):
        with requests_mock.Mocker() as m:
            m.head(REDIRECT, status_code=302, headers={"Location": FINAL})
            m.head(FINAL, status_code=404)

            with pytest.raises(ResolutionError, match="HTTP 404"):
                resolve_redirect(REDIRECT, entry_path=ENTRY)

    def test_connection_error_raises(self):
        with requests_mock.Mocker() as m:
            m.head(REDIRECT, exc=requests.exceptions.ConnectionError("dns failure"))

            with pytest.raises(ResolutionError, match="could not resolve") as exc_info:
                resolve_redirect(REDIRECT, entry_path=ENTRY)

        assert isinstance(exc_info.value.__cause__, requests.RequestException)
