"""
Tests for fslxagent.versioning module.

Tests version parsing and the install decision including:
- Numeric, component-wise ordering
- Lenient parsing (missing components, garbage -> not installed)
- Install decision (missing, upgrade, skip)
- Version extraction from distribution filenames and URLs
"""

from __future__ import annotations

import itertools

import pytest

from fslxagent.versioning import (
    InstallDecision,
    PackageVersion,
    compare_versions,
    decide,
    filename_from_url,
    version_from_filename,
    version_from_url,
)

pytestmark = pytest.mark.unit

V = PackageVersion.parse


class TestPackageVersionParse:
    """Tests for PackageVersion.parse."""

    def test_four_parts(self):
        assert V("2.9.8440.42104") == PackageVersion(2, 9, 8440, 42104)

    def test_missing_components_are_zero(self):
        assert V("2.9") == PackageVersion(2, 9, 0, 0)
        assert V("3") == PackageVersion(3, 0, 0, 0)

    def test_leading_v_and_whitespace(self):
        assert V("  v2.9.8000.0 ") == PackageVersion(2, 9, 8000, 0)

    @pytest.mark.parametrize(
        "text",
        [None, "", "garbage", "2.9.x.1", "1.2.3.4.5", "2..3", "2.9.8000.\u00b2", "\u0662.9"],
    )
    def test_invalid_is_not_installed(self, text):
        version = V(text)
        assert version == PackageVersion.NOT_INSTALLED
        assert not version.is_installed

    def test_str(self):
        assert str(V("2.9.8440.42104")) == "2.9.8440.42104"
        assert str(PackageVersion.NOT_INSTALLED) == "0.0.0.0"


class TestOrdering:
    """Tests for numeric component-wise ordering."""

    def test_numeric_not_lexicographic(self):
        assert V("2.9.10.0") > V("2.9.9.0")
        assert V("10.0.0.0") > V("9.99.99.99")

    def test_revision_breaks_ties(self):
        assert V("2.9.8440.42104") > V("2.9.8440.1")

    def test_compare_versions(self):
        assert compare_versions(V("1.0"), V("2.0")) == -1
        assert compare_versions(V("2.0"), V("2.0.0.0")) == 0
        assert compare_versions(V("2.0.0.1"), V("2.0")) == 1

    def test_total_order_is_consistent(self):
        versions = [V("0.0.0.0"), V("2.9.8000.0"), V("2.9.8440.42104"), V("3.0")]
        for a, b in itertools.product(versions, repeat=2):
            assert compare_versions(a, b) == -compare_versions(b, a)
            assert (compare_versions(a, b) == 0) == (a == b)


class TestDecide:
    """Tests for the install decision."""

    def test_nothing_installed(self):
        assert decide(PackageVersion.NOT_INSTALLED, V("2.9.8440.42104")) is (
            InstallDecision.INSTALL_MISSING
        )

    def test_upgrade(self):
        assert decide(V("2.9.8000.0"), V("2.9.8440.42104")) is (
            InstallDecision.UPGRADE_AVAILABLE
        )

    def test_equal_is_skipped(self):
        assert decide(V("2.9.8440.42104"), V("2.9.8440.42104")) is (
            InstallDecision.SKIP_UP_TO_DATE
        )

    def test_newer_local_is_skipped(self):
        assert decide(V("3.0.0.0"), V("2.9.8440.42104")) is InstallDecision.SKIP_UP_TO_DATE

    def test_installs_only_when_remote_is_greater(self):
        versions = [V("0.0.0.0"), V("2.9.8000.0"), V("2.9.8440.42104"), V("3.0")]
        for local, remote in itertools.product(versions, repeat=2):
            installs = decide(local, remote) is not InstallDecision.SKIP_UP_TO_DATE
            assert installs == (remote > local)

    def test_decide_after_upgrade_skips(self):
        remote = V("2.9.8440.42104")
        assert decide(V("2.9.8000.0"), remote) is InstallDecision.UPGRADE_AVAILABLE
        # Once the upgrade has happened, the next run is a no-op.
        assert decide(remote, remote) is InstallDecision.SKIP_UP_TO_DATE


class TestFilenameVersion:
    """Tests for version extraction from distribution filenames."""

    def test_version_from_filename(self):
        assert version_from_filename("FSLogix_Apps_2.9.8440.42104.zip") == V(
            "2.9.8440.42104"
        )

    def test_case_insensitive_extension(self):
        assert version_from_filename("FSLogix_Apps_2.9.8440.42104.ZIP") == V(
            "2.9.8440.42104"
        )

    @pytest.mark.parametrize(
        "name",
        [
            "FSLogix_Apps.zip",
            "FSLogixApps_2.9.8440.42104.zip",
            "FSLogix_Apps_2.9.8440.zip",
            "FSLogix_Apps_2.9.8440.42104.exe",
            "FSLogix_Apps_Extra_2.9.8440.42104.zip",
        ],
    )
    def test_mismatch_raises(self, name):
        with pytest.raises(ValueError, match="does not match"):
            version_from_filename(name)

    def test_filename_from_url_decodes(self):
        url = "https://download.example.com/pr/FSLogix%5FApps%5F2.9.8440.42104.zip?x=1"
        assert filename_from_url(url) == "FSLogix_Apps_2.9.8440.42104.zip"

    def test_version_from_url(self):
        url = "https://download.example.com/pr/FSLogix_Apps_2.9.8440.42104.zip"
        assert version_from_url(url) == V("2.9.8440.42104")
