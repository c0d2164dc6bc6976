"""Package URL parsing and mapping of PURL types to lockfile ecosystems."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, unquote

from depvet.models import ECOSYSTEM_GITHUB_ACTIONS, PackageDetails

LOCKFILE_BUNDLER_ECOSYSTEM = "RubyGems"
LOCKFILE_CARGO_ECOSYSTEM = "crates.io"
LOCKFILE_COMPOSER_ECOSYSTEM = "Packagist"
LOCKFILE_GO_ECOSYSTEM = "Go"
LOCKFILE_MAVEN_ECOSYSTEM = "Maven"
LOCKFILE_NPM_ECOSYSTEM = "npm"
LOCKFILE_NUGET_ECOSYSTEM = "NuGet"
LOCKFILE_PIP_ECOSYSTEM = "PyPI"

# The PURL type used for Go modules.
PURL_TYPE_GO_MODULE = "go" + "lang"

_KNOWN_TYPES = {
    "cargo": LOCKFILE_CARGO_ECOSYSTEM,
    "composer": LOCKFILE_COMPOSER_ECOSYSTEM,
    PURL_TYPE_GO_MODULE: LOCKFILE_GO_ECOSYSTEM,
    "maven": LOCKFILE_MAVEN_ECOSYSTEM,
    "npm": LOCKFILE_NPM_ECOSYSTEM,
    "nuget": LOCKFILE_NUGET_ECOSYSTEM,
    "gem": LOCKFILE_BUNDLER_ECOSYSTEM,
    "pypi": LOCKFILE_PIP_ECOSYSTEM,
    "pip": LOCKFILE_PIP_ECOSYSTEM,
    "go": LOCKFILE_GO_ECOSYSTEM,
    "rubygems": LOCKFILE_BUNDLER_ECOSYSTEM,
    "github": ECOSYSTEM_GITHUB_ACTIONS,
    "actions": ECOSYSTEM_GITHUB_ACTIONS,
}

_LOWERCASE_NAMESPACE_TYPES = {
    "alpm", "bitbucket", "composer", "deb", "github", PURL_TYPE_GO_MODULE, "hex", "npm", "rpm",
}
_LOWERCASE_NAME_TYPES = {"alpm", "bitbucket", "composer", "deb", "github", PURL_TYPE_GO_MODULE, "hex", "npm"}

_SCHEME = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class PurlError(ValueError):
    """Raised when a package URL cannot be parsed or mapped."""


@dataclass(frozen=True)
class PackageUrl:
    """The parts of a package URL."""

    type: str
    name: str
    namespace: str = ""
    version: str = ""
    qualifiers: dict[str, str] = field(default_factory=dict)
    subpath: str = ""


@dataclass(frozen=True)
class PurlResponse:
    """A parsed package URL together with the package details it names."""

    package_details: PackageDetails
    instance: PackageUrl


def _unescape(text: str) -> str:
    if _BAD_ESCAPE.search(text):
        raise PurlError(f"invalid URL escape in {text!r}")
    return unquote(text)


def _split_namespace_name_version(path: str) -> tuple[str, str, str]:
    namespace = ""
    name = path
    if "/" in name:
        raw_namespace, name = name.rsplit("/", 1)
        segments = [_unescape(segment) for segment in raw_namespace.split("/") if segment]
        namespace = "/".join(segments)

    version = ""
    if "@" in name:
        name, raw_version = name.rsplit("@", 1)
        version = _unescape(raw_version)

    name = _unescape(name)
    if not name:
        raise PurlError("purl is missing name")
    return namespace, name, version


def _parse_qualifiers(raw_query: str) -> dict[str, str]:
    qualifiers: dict[str, str] = {}
    for key, value in parse_qsl(raw_query, keep_blank_values=False):
        qualifiers[key.lower()] = value
    return dict(sorted(qualifiers.items()))


def _validate(purl: PackageUrl) -> None:
    if purl.type == "swift":
        if not purl.namespace:
            raise PurlError("namespace is required")
        if not purl.version:
            raise PurlError("version is required")
    elif purl.type == "cran" and not purl.version:
        raise PurlError("version is required")


def parse_purl_string(text: str) -> PackageUrl:
    """Parse a ``pkg:`` URL into its parts, normalising them per type."""
    if text.startswith(":"):
        raise PurlError("failed to parse as URL: missing protocol scheme")

    match = _SCHEME.match(text)
    scheme = match.group(1).lower() if match else ""
    if scheme != "pkg":
        raise PurlError(f'purl scheme is not "pkg": "{scheme}"')

    rest = text[match.end():]
    rest, _, fragment = rest.partition("#")
    rest, _, raw_query = rest.partition("?")
    rest = rest.lstrip("/")

    purl_type, sep, path = rest.partition("/")
    if not sep or not purl_type:
        raise PurlError("purl is missing type or name")
    purl_type = purl_type.lower()

    qualifiers = _parse_qualifiers(raw_query)
    namespace, name, version = _split_namespace_name_version(path)

    if purl_type in _LOWERCASE_NAMESPACE_TYPES:
        namespace = namespace.lower()
    if purl_type in _LOWERCASE_NAME_TYPES:
        name = name.lower()
    elif purl_type == "pypi":
        name = name.lower().replace("_", "-")
    if purl_type == "huggingface":
        version = version.lower()

    purl = PackageUrl(
        type=purl_type,
        namespace=namespace,
        name=name,
        version=version,
        qualifiers=qualifiers,
        subpath=_unescape(fragment).strip("/"),
    )
    _validate(purl)
    return purl


def purl_type_to_ecosystem(purl_type: str) -> str:
    """Map a PURL type to a lockfile ecosystem name."""
    try:
        return _KNOWN_TYPES[purl_type]
    except KeyError:
        raise PurlError(f"failed to map PURL type:{purl_type} to known ecosystem") from None


def purl_type_to_lockfile_ecosystem(purl_type: str) -> str:
    """Same as :func:`purl_type_to_ecosystem`."""
    return purl_type_to_ecosystem(purl_type)


def _lockfile_package_name(ecosystem: str, group: str, name: str) -> str:
    if not group:
        return name
    if ecosystem in (LOCKFILE_GO_ECOSYSTEM, LOCKFILE_NPM_ECOSYSTEM, ECOSYSTEM_GITHUB_ACTIONS):
        return f"{group}/{name}"
    if ecosystem == LOCKFILE_MAVEN_ECOSYSTEM:
        return f"{group}:{name}"
    return name


def parse_package_url(purl: str) -> PurlResponse:
    """Parse a package URL and derive the lockfile package details it names."""
    instance = parse_purl_string(purl)
    ecosystem = purl_type_to_ecosystem(instance.type)
    details = PackageDetails(
        name=_lockfile_package_name(ecosystem, instance.namespace, instance.name),
        version=instance.version,
        ecosystem=ecosystem,
    )
    return PurlResponse(package_details=details, instance=instance)