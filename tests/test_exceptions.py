from datetime import datetime, timedelta, timezone

import pytest

from depvet import exceptions
from depvet.exceptions import (
    ExceptionMatchResult,
    ExceptionRule,
    ExceptionsFileError,
    ExceptionsFileLoader,
    ExceptionSpec,
    ExceptionStore,
)
from depvet.models import Package, PackageManifest, new_package_detail

VALID_YAML = """\
name: Test exceptions
description: Fixture suite
exceptions:
  - id: a
    ecosystem: maven
    name: p1
    version: v1
    expires: 2099-01-01T00:00:00Z
  - id: b
    ecosystem: maven
    name: p2
    version: "*"
    expires: 2099-01-01T00:00:00Z
  - id: c
    ecosystem: maven
    name: p3
    version: "*"
    expires: 2001-01-01T00:00:00Z
"""

INVALID_YAML = """\
name: Invalid
exceptions:
  - id: a
    ecosystem: maven
    name: p1
    unexpected: value
    expires: 2099-01-01T00:00:00Z
"""


@pytest.fixture(autouse=True)
def _clean_store():
    exceptions.reset_store()
    yield
    exceptions.reset_store()


def _rule(rule_id, ecosystem, name, version="", hours=1):
    return ExceptionRule(
        spec=ExceptionSpec(id=rule_id, ecosystem=ecosystem, name=name, version=version),
        expiry=datetime.now(timezone.utc) + timedelta(hours=hours),
    )


def _package(ecosystem, name, version):
    return Package(details=new_package_detail(ecosystem, name, version))


@pytest.mark.parametrize(
    "rules, count",
    [
        ([_rule("a", "maven", "p1")], 1),
        ([_rule("a", "maven", "p1"), _rule("b", "maven", "p1")], 1),
        ([_rule("a", "maven", "p1"), _rule("b", "maven", "p2")], 2),
        ([_rule("a", "maven", "p1", hours=-1)], 0),
    ],
)
def test_load(rules, count):
    exceptions.load(rules)
    assert exceptions.active_count() == count


@pytest.mark.parametrize(
    "rule, ecosystem, name, version, match",
    [
        (_rule("a", "maven", "p1", "v1"), "maven", "p1", "v1", True),
        (_rule("a", "maven", "p1", "*"), "maven", "p1", "v-anything", True),
        (_rule("a", "maven", "p1", ""), "maven", "p1", "v-anything", False),
        (_rule("a", "MAVEN", "P1", "v1"), "maven", "p1", "v1", True),
        (_rule("a", "MAVEN", "P1", "V1"), "maven", "p1", "v1", False),
    ],
)
def test_apply(rule, ecosystem, name, version, match):
    exceptions.load([rule])
    result = exceptions.apply(_package(ecosystem, name, version))
    assert result.matched() is match


def test_matched_result_carries_rule():
    rule = _rule("a", "maven", "p1", "v1")
    exceptions.load([rule])
    pkg = _package("maven", "p1", "v1")
    result = exceptions.apply(pkg)
    assert result.rule == rule
    assert result.pkg is pkg


def test_empty_result_is_not_matched():
    assert ExceptionMatchResult().matched() is False


def test_duplicate_id_keeps_first_rule():
    first = _rule("a", "maven", "p1", "v1")
    second = _rule("a", "maven", "p1", "*")
    exceptions.load([first, second])
    assert exceptions.apply(_package("maven", "p1", "v2")).matched() is False


def test_separate_store_is_independent():
    store = ExceptionStore()
    store.load([_rule("a", "npm", "left-pad", "*")])
    assert store.active_count() == 1
    assert exceptions.active_count() == 0
    assert store.match(_package("npm", "left-pad", "1.0.0")).matched() is True


@pytest.mark.parametrize(
    "name, version, match",
    [("p1", "v1", True), ("p2", "v5-anything", True), ("p3", "v5-anything", False)],
)
def test_file_loader_matches(tmp_path, name, version, match):
    path = tmp_path / "1_valid.yml"
    path.write_text(VALID_YAML)
    exceptions.load(ExceptionsFileLoader.from_path(path))
    assert exceptions.apply(_package("maven", name, version)).matched() is match


def test_file_loader_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ExceptionsFileLoader.from_path(tmp_path / "1_does_not_exists.yml")


def test_file_loader_unknown_field(tmp_path):
    path = tmp_path / "2_invalid.yml"
    path.write_text(INVALID_YAML)
    with pytest.raises(ExceptionsFileError, match="unknown field"):
        ExceptionsFileLoader.from_path(path)


def test_file_loader_bad_expiry_fails_load(tmp_path):
    path = tmp_path / "3_bad_expiry.yml"
    path.write_text(
        "exceptions:\n"
        "  - id: a\n    ecosystem: maven\n    name: p1\n    version: v1\n"
        "    expires: 2099-01-01T00:00:00Z\n"
        "  - id: b\n    ecosystem: maven\n    name: p2\n    version: v1\n"
        "    expires: tomorrow\n"
    )
    with pytest.raises(ExceptionsFileError, match="invalid expiry time"):
        exceptions.load(ExceptionsFileLoader.from_path(path))
    assert exceptions.active_count() == 1


def test_allowed_packages_skips_exempted():
    manifest = PackageManifest.from_local("/work/pom.xml", "Maven")
    kept = _package("maven", "p2", "v2")
    manifest.add_package(_package("maven", "p1", "v1"))
    manifest.add_package(kept)
    exceptions.load([_rule("a", "maven", "p1", "v1")])
    assert list(exceptions.allowed_packages(manifest)) == [kept]