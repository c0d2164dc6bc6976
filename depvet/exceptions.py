"""Exception rules that exempt packages from analysis."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

import yaml

from depvet.log import get_logger
from depvet.models import Package, PackageManifest, id_gen

_JITTER = timedelta(seconds=5)

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _YamlLoader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as plain strings."""


_YamlLoader.yaml_implicit_resolvers = {
    key: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for key, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

_SUITE_FIELDS = {"name", "description", "exceptions"}
_EXCEPTION_FIELDS = {"id", "ecosystem", "name", "version", "expires"}


class ExceptionsFileError(ValueError):
    """Raised when an exceptions file is malformed."""


@dataclass(frozen=True)
class ExceptionSpec:
    """An exception as written in an exceptions file."""

    id: str = ""
    ecosystem: str = ""
    name: str = ""
    version: str = ""
    expires: str = ""


@dataclass(frozen=True)
class ExceptionRule:
    """An exception together with its parsed expiry time."""

    spec: ExceptionSpec
    expiry: datetime

    def _matches(self, pkg: Package) -> bool:
        return (
            pkg.ecosystem.casefold() == self.spec.ecosystem.casefold()
            and pkg.name.casefold() == self.spec.name.casefold()
            and (self.spec.version == "*" or self.spec.version == pkg.version)
        )


@dataclass
class ExceptionMatchResult:
    """The package and the rule that exempts it, if any."""

    pkg: Optional[Package] = None
    rule: Optional[ExceptionRule] = None

    def matched(self) -> bool:
        return self.pkg is not None and self.rule is not None


def _pkg_hash(ecosystem: str, name: str) -> str:
    return id_gen(f"{ecosystem.lower()}/{name.lower()}")


class ExceptionStore:
    """Rules indexed by package and exception id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rules: dict[str, dict[str, ExceptionRule]] = {}

    def _clear(self) -> None:
        with self._lock:
            self._rules = {}

    def load(self, rules: Iterable[ExceptionRule]) -> None:
        """Add unexpired rules; a rule whose id is already known for its package is skipped."""
        with self._lock:
            for rule in rules:
                if rule.expiry < datetime.now(timezone.utc) + _JITTER:
                    continue
                by_id = self._rules.setdefault(_pkg_hash(rule.spec.ecosystem, rule.spec.name), {})
                by_id.setdefault(rule.spec.id, rule)

    def match(self, pkg: Package) -> ExceptionMatchResult:
        """Return the first rule that exempts ``pkg``, or an empty result."""
        with self._lock:
            for rule in self._rules.get(_pkg_hash(pkg.ecosystem, pkg.name), {}).values():
                if rule._matches(pkg):
                    return ExceptionMatchResult(pkg=pkg, rule=rule)
        return ExceptionMatchResult()

    def active_count(self) -> int:
        """Number of distinct packages that have rules."""
        return len(self._rules)


def _parse_expiry(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ExceptionsFileError(f"invalid expiry time {value!r}: {exc}") from exc
    if parsed.tzinfo is None or "T" not in value.upper():
        raise ExceptionsFileError(f"invalid expiry time {value!r}: not RFC 3339")
    return parsed


def _string_field(entry: dict[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ExceptionsFileError(f"invalid value for string field {key}: {value!r}")
    return value


def _parse_suite(document: Any) -> list[ExceptionSpec]:
    if document is None:
        return []
    if not isinstance(document, dict):
        raise ExceptionsFileError("exceptions file must hold a mapping")

    unknown = set(document) - _SUITE_FIELDS
    if unknown:
        raise ExceptionsFileError(f"unknown field {sorted(unknown)[0]!r}")

    entries = document.get("exceptions") or []
    if not isinstance(entries, list):
        raise ExceptionsFileError("exceptions must be a list")

    specs = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ExceptionsFileError("each exception must be a mapping")
        unknown = set(entry) - _EXCEPTION_FIELDS
        if unknown:
            raise ExceptionsFileError(f"unknown field {sorted(unknown)[0]!r}")
        specs.append(ExceptionSpec(**{key: _string_field(entry, key) for key in _EXCEPTION_FIELDS}))
    return specs


@dataclass(frozen=True)
class ExceptionsFileLoader:
    """Rules read from a YAML exceptions file; expiry is parsed as rules are iterated."""

    specs: tuple[ExceptionSpec, ...] = field(default_factory=tuple)

    @classmethod
    def from_path(cls, path: str | Path) -> "ExceptionsFileLoader":
        with open(path, encoding="utf-8") as stream:
            try:
                document = yaml.load(stream, Loader=_YamlLoader)
            except yaml.YAMLError as exc:
                raise ExceptionsFileError(f"invalid YAML: {exc}") from exc
        return cls(specs=tuple(_parse_suite(document)))

    def __iter__(self) -> Iterator[ExceptionRule]:
        for spec in self.specs:
            yield ExceptionRule(spec=spec, expiry=_parse_expiry(spec.expires))


_global_store = ExceptionStore()


def reset_store() -> None:
    """Forget every loaded rule."""
    _global_store._clear()


def load(rules: Iterable[ExceptionRule]) -> None:
    """Load rules into the process-wide store."""
    _global_store.load(rules)


def apply(pkg: Package) -> ExceptionMatchResult:
    """Match ``pkg`` against the process-wide store."""
    return _global_store.match(pkg)


def active_count() -> int:
    return _global_store.active_count()


def allowed_packages(manifest: PackageManifest) -> Iterator[Package]:
    """Yield the manifest's packages that no exception rule exempts."""
    for pkg in manifest.get_packages():
        if apply(pkg).matched():
            get_logger().debug("Ignoring package:%s due to exception rule", pkg.short_name())
            continue
        yield pkg