from __future__ import annotations

import pytest

from skillreg.errors import InvalidInput
from skillreg.services.registry import semver

VERSIONS = ["1.0.0", "1.1.0", "1.2.0", "2.0.0"]


@pytest.mark.parametrize(
    "constraint, expected",
    [
        (None, "2.0.0"),
        ("", "2.0.0"),
        ("^1.0.0", "1.2.0"),
        ("~1.1.0", "1.1.0"),
        (">=1.0.0 <2.0.0", "1.2.0"),
        (">=1.1.0", "2.0.0"),
        ("1.1.0", "1.1.0"),
        ("2.1.0", None),
        ("^3.0.0", None),
    ],
)
def test_resolve_version(constraint, expected):
    assert semver.resolve_version(VERSIONS, constraint) == expected


def test_resolve_without_valid_versions():
    assert semver.resolve_version([], None) is None
    assert semver.resolve_version(["banana"], None) is None
    # точное совпадение работает и для не-semver строк
    assert semver.resolve_version(["banana"], "banana") == "banana"


def test_sort_desc_puts_invalid_last():
    assert semver.sort_versions_desc(["1.0.0", "zeta", "10.0.0", "2.0.0", "alpha"]) == [
        "10.0.0",
        "2.0.0",
        "1.0.0",
        "alpha",
        "zeta",
    ]


def test_parse_constraint():
    assert semver.parse_constraint("1.2.3") == ("exact", "1.2.3")
    assert semver.parse_constraint(" ^1.2.3 ") == ("range", "^1.2.3")
    assert semver.parse_constraint(">=1.0.0 <2.0.0") == ("range", ">=1.0.0 <2.0.0")
    with pytest.raises(InvalidInput):
        semver.parse_constraint("   ")


def test_malformed_range_is_invalid_input():
    with pytest.raises(InvalidInput):
        semver.validate_constraint(">=foo")
    assert semver.validate_constraint("not-semver") == "not-semver"


def test_compare_and_bump():
    assert semver.compare_versions("1.2.0", "1.10.0") == -1
    assert semver.is_greater("2.0.0", "1.99.99")
    assert not semver.is_greater("1.0.0", "1.0.0")
    assert semver.bump_version("1.0.0") == "1.0.1"
    assert semver.bump_version("1.4.2", "minor") == "1.5.0"
    assert semver.bump_version("1.4.2", "major") == "2.0.0"
    with pytest.raises(InvalidInput):
        semver.compare_versions("1.0.0", "nope")
    with pytest.raises(InvalidInput):
        semver.bump_version("nope")
