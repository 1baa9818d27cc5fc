"""Test semantic versioning and compatibility checks."""

import itertools

import pytest

from nodeflow.catalog.schemas import CompatibilitySeverity, CompatibilityType, NodeVersionBounds
from nodeflow.catalog.versioning import (
    Semver,
    UpgradeType,
    bump_version,
    check_node_compatibility,
    compare_semver,
    format_semver,
    get_node_upgrade_type,
    is_semver,
    parse_semver,
    satisfies_range,
    should_auto_upgrade,
)

SAMPLE_VERSIONS = [
    "0.0.1", "0.1.0", "0.1.1-alpha", "0.1.1", "1.0.0-alpha", "1.0.0-alpha.1",
    "1.0.0-beta", "1.0.0", "1.0.1", "1.2.0", "1.10.0", "2.0.0-rc.1", "2.0.0",
]


@pytest.mark.unit
class TestParsing:
    """Test semver parsing and formatting."""

    def test_parse(self):
        assert parse_semver("1.2.3") == Semver(major=1, minor=2, patch=3)
        assert parse_semver("1.2.3-beta.2") == Semver(major=1, minor=2, patch=3, prerelease="beta.2")
        assert parse_semver("0.10.0") == Semver(major=0, minor=10, patch=0)

    @pytest.mark.parametrize("value", [
        "1.2", "v1.2.3", "1.2.3+build", "a.b.c", "", None, 123,
        " 1.2.3", "1.2.3 ", "1.2.3\n", "01.2.3", "1.02.3", "1.2.03",
    ])
    def test_rejects_invalid(self, value):
        assert parse_semver(value) is None
        assert is_semver(value) is False

    def test_format(self):
        assert format_semver(Semver(major=1, minor=0, patch=0, prerelease="rc.1")) == "1.0.0-rc.1"
        assert str(parse_semver("3.4.5")) == "3.4.5"

    @pytest.mark.parametrize("version", SAMPLE_VERSIONS)
    def test_format_inverts_parse(self, version):
        assert format_semver(parse_semver(version)) == version


@pytest.mark.unit
class TestCompare:
    """Test version ordering."""

    def test_basic_ordering(self):
        assert compare_semver("1.0.0", "2.0.0") == -1
        assert compare_semver("1.10.0", "1.9.0") == 1
        assert compare_semver("1.0.0", "1.0.0") == 0

    def test_prerelease_sorts_before_release(self):
        assert compare_semver("1.0.0-alpha", "1.0.0") == -1
        assert compare_semver("1.0.0", "1.0.0-alpha") == 1
        assert compare_semver("1.0.0-alpha", "1.0.0-beta") == -1

    def test_invalid_versions_compare_as_text(self):
        assert compare_semver("abc", "abd") == -1
        assert compare_semver("x", "x") == 0

    def test_sample_versions_are_sorted(self):
        for earlier, later in zip(SAMPLE_VERSIONS, SAMPLE_VERSIONS[1:]):
            assert compare_semver(earlier, later) == -1, (earlier, later)

    def test_total_order(self):
        for a, b in itertools.product(SAMPLE_VERSIONS, repeat=2):
            assert compare_semver(a, b) == -compare_semver(b, a)
            assert (compare_semver(a, b) == 0) == (a == b)
        for a, b, c in itertools.product(SAMPLE_VERSIONS, repeat=3):
            if compare_semver(a, b) <= 0 and compare_semver(b, c) <= 0:
                assert compare_semver(a, c) <= 0


@pytest.mark.unit
class TestRanges:
    """Test range satisfaction."""

    @pytest.mark.parametrize("version,version_range,expected", [
        ("1.2.3", "1.2.3", True),
        ("1.2.3", "=1.2.3", True),
        ("1.2.4", "==1.2.3", False),
        ("1.2.3", ">1.2.0", True),
        ("1.2.0", ">1.2.0", False),
        ("1.2.0", ">=1.2.0", True),
        ("1.1.9", "<1.2.0", True),
        ("1.2.0", "<=1.2.0", True),
        ("1.5.0", "^1.2.0", True),
        ("2.0.0", "^1.2.0", False),
        ("1.1.0", "^1.2.0", False),
        ("0.2.5", "^0.2.3", True),
        ("0.3.0", "^0.2.3", False),
        ("0.0.3", "^0.0.3", True),
        ("0.0.4", "^0.0.3", False),
        ("1.2.9", "~1.2.3", True),
        ("1.3.0", "~1.2.3", False),
        ("1.2.2", "~1.2.3", False),
        ("1.5.0", ">=1.0.0 <2.0.0", True),
        ("2.0.0", ">=1.0.0 <2.0.0", False),
        ("1.0.0", "", False),
        ("bad", "^1.0.0", False),
    ])
    def test_satisfies_range(self, version, version_range, expected):
        assert satisfies_range(version, version_range) is expected


@pytest.mark.unit
class TestUpgrades:
    """Test bumps and upgrade classification."""

    def test_bump(self):
        assert bump_version("1.2.3", "major") == "2.0.0"
        assert bump_version("1.2.3", "minor") == "1.3.0"
        assert bump_version("1.2.3-beta", "patch") == "1.2.4"
        assert bump_version("1.2.3", "prerelease") == "1.2.3-alpha.0"
        assert bump_version("1.2.3", "prerelease", "rc") == "1.2.3-rc.0"
        assert bump_version("1.2.3-rc.4", "prerelease") == "1.2.3-rc.5"
        assert bump_version("not-a-version", "major") == "not-a-version"

    def test_upgrade_type(self):
        assert get_node_upgrade_type("1.0.0", "2.0.0") == UpgradeType.MAJOR
        assert get_node_upgrade_type("1.0.0", "1.1.0") == UpgradeType.MINOR
        assert get_node_upgrade_type("1.0.0", "1.0.1") == UpgradeType.PATCH
        assert get_node_upgrade_type("1.0.0-alpha", "1.0.0-beta") == UpgradeType.PRERELEASE
        assert get_node_upgrade_type("1.0.0", "1.0.0") == UpgradeType.NONE
        assert get_node_upgrade_type("1.0", "1.0.0") == UpgradeType.UNKNOWN

    def test_auto_upgrade(self):
        assert should_auto_upgrade(UpgradeType.PATCH) is True
        assert should_auto_upgrade("minor") is True
        assert should_auto_upgrade(UpgradeType.MAJOR) is False
        assert should_auto_upgrade(UpgradeType.UNKNOWN) is False


@pytest.mark.unit
class TestCompatibility:
    """Test SDK and app compatibility checks."""

    def test_no_bounds_is_compatible(self):
        result = check_node_compatibility({}, {"sdkVersion": "1.0.0"})
        assert result.compatible is True
        assert result.issues == []

    def test_within_bounds(self):
        result = check_node_compatibility(
            NodeVersionBounds(min_sdk_version="1.0.0", max_sdk_version="2.0.0"),
            {"sdk_version": "1.5.0"},
        )
        assert result.compatible is True

    def test_below_minimum(self):
        result = check_node_compatibility({"minSdkVersion": "2.0.0"}, {"sdkVersion": "1.9.9"})

        assert result.compatible is False
        assert result.issues[0].type == CompatibilityType.SDK
        assert result.issues[0].severity == CompatibilitySeverity.ERROR
        assert "2.0.0" in result.issues[0].message

    def test_above_maximum(self):
        result = check_node_compatibility({"maxAppVersion": "3.0.0"}, {"appVersion": "3.1.0"})

        assert result.compatible is False
        assert result.issues[0].type == CompatibilityType.APP

    def test_unknown_current_version_warns(self):
        result = check_node_compatibility({"minAppVersion": "1.0.0"}, None)

        assert result.compatible is True
        assert result.issues[0].severity == CompatibilitySeverity.WARNING

    def test_unrelated_fields_are_ignored(self):
        result = check_node_compatibility({"name": "node", "minSdkVersion": "1.0.0"}, {"sdkVersion": "1.0.0"})
        assert result.compatible is True
