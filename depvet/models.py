"""Package manifests, packages and ecosystem mappings."""

from __future__ import annotations

import enum
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from depvet.dependency_graph import DependencyGraph

ECOSYSTEM_MAVEN = "Maven"
ECOSYSTEM_RUBYGEMS = "RubyGems"
ECOSYSTEM_GO = "Go"
ECOSYSTEM_NPM = "npm"
ECOSYSTEM_PYPI = "PyPI"
ECOSYSTEM_CARGO = "Cargo"
ECOSYSTEM_NUGET = "NuGet"
ECOSYSTEM_PACKAGIST = "Packagist"
ECOSYSTEM_HEX = "Hex"
ECOSYSTEM_PUB = "Pub"
# Containers rather than real ecosystems.
ECOSYSTEM_CYCLONEDX_SBOM = "CycloneDxSbom"
ECOSYSTEM_SPDX_SBOM = "SpdxSbom"
ECOSYSTEM_GITHUB_ACTIONS = "GitHubActions"
ECOSYSTEM_TERRAFORM = "Terraform"
ECOSYSTEM_TERRAFORM_MODULE = "TerraformModule"
ECOSYSTEM_TERRAFORM_PROVIDER = "TerraformProvider"

_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_MASK64 = (1 << 64) - 1


def _hashed_id(text: str) -> str:
    """FNV-1a 64-bit hash of ``text`` as lower-case hex without padding."""
    value = _FNV64_OFFSET
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * _FNV64_PRIME) & _MASK64
    return format(value, "x")


def id_gen(data: str) -> str:
    """Return a stable identifier derived from ``data``."""
    return _hashed_id(data)


def _path_dir(path: str) -> str:
    return os.path.normpath(os.path.dirname(path) or ".")


def _path_base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip(os.sep)
    if not stripped:
        return os.sep
    return os.path.basename(stripped)


def _path_join(*parts: str) -> str:
    present = [part for part in parts if part]
    if not present:
        return ""
    return os.path.normpath(os.sep.join(present))


class ManifestSourceType(str, enum.Enum):
    LOCAL = "local"
    PURL = "purl"
    GIT_REPOSITORY = "git_repository"


class ControlTowerEcosystem(str, enum.Enum):
    UNSPECIFIED = "ECOSYSTEM_UNSPECIFIED"
    CARGO = "ECOSYSTEM_CARGO"
    GO = "ECOSYSTEM_GO"
    MAVEN = "ECOSYSTEM_MAVEN"
    NPM = "ECOSYSTEM_NPM"
    RUBYGEMS = "ECOSYSTEM_RUBYGEMS"
    PYPI = "ECOSYSTEM_PYPI"
    GITHUB_ACTIONS = "ECOSYSTEM_GITHUB_ACTIONS"
    PACKAGIST = "ECOSYSTEM_PACKAGIST"
    TERRAFORM = "ECOSYSTEM_TERRAFORM"
    TERRAFORM_MODULE = "ECOSYSTEM_TERRAFORM_MODULE"
    TERRAFORM_PROVIDER = "ECOSYSTEM_TERRAFORM_PROVIDER"


class SpecEcosystem(str, enum.Enum):
    UNKNOWN_ECOSYSTEM = "UNKNOWN_ECOSYSTEM"
    MAVEN = "Maven"
    RUBYGEMS = "RubyGems"
    GO = "Go"
    NPM = "Npm"
    PYPI = "PyPI"
    CARGO = "Cargo"
    NUGET = "NuGet"
    PACKAGIST = "Packagist"
    HEX = "Hex"
    PUB = "Pub"
    CYCLONEDX_SBOM = "CycloneDxSBOM"
    SPDX_SBOM = "SpdxSBOM"


_CONTROL_TOWER_ECOSYSTEMS = {
    ECOSYSTEM_CARGO: ControlTowerEcosystem.CARGO,
    ECOSYSTEM_GO: ControlTowerEcosystem.GO,
    ECOSYSTEM_MAVEN: ControlTowerEcosystem.MAVEN,
    ECOSYSTEM_NPM: ControlTowerEcosystem.NPM,
    ECOSYSTEM_RUBYGEMS: ControlTowerEcosystem.RUBYGEMS,
    ECOSYSTEM_PYPI: ControlTowerEcosystem.PYPI,
    ECOSYSTEM_GITHUB_ACTIONS: ControlTowerEcosystem.GITHUB_ACTIONS,
    ECOSYSTEM_PACKAGIST: ControlTowerEcosystem.PACKAGIST,
    ECOSYSTEM_TERRAFORM: ControlTowerEcosystem.TERRAFORM,
    ECOSYSTEM_TERRAFORM_MODULE: ControlTowerEcosystem.TERRAFORM_MODULE,
    ECOSYSTEM_TERRAFORM_PROVIDER: ControlTowerEcosystem.TERRAFORM_PROVIDER,
}

_SPEC_ECOSYSTEMS = {
    ECOSYSTEM_CARGO: SpecEcosystem.CARGO,
    ECOSYSTEM_GO: SpecEcosystem.GO,
    ECOSYSTEM_MAVEN: SpecEcosystem.MAVEN,
    ECOSYSTEM_NPM: SpecEcosystem.NPM,
    ECOSYSTEM_HEX: SpecEcosystem.HEX,
    ECOSYSTEM_RUBYGEMS: SpecEcosystem.RUBYGEMS,
    ECOSYSTEM_PYPI: SpecEcosystem.PYPI,
    ECOSYSTEM_PUB: SpecEcosystem.PUB,
    ECOSYSTEM_CYCLONEDX_SBOM: SpecEcosystem.CYCLONEDX_SBOM,
    ECOSYSTEM_SPDX_SBOM: SpecEcosystem.SPDX_SBOM,
    ECOSYSTEM_PACKAGIST: SpecEcosystem.PACKAGIST,
    ECOSYSTEM_NUGET: SpecEcosystem.NUGET,
}

_MODEL_ECOSYSTEMS = {
    ControlTowerEcosystem.GO: ECOSYSTEM_GO,
    ControlTowerEcosystem.MAVEN: ECOSYSTEM_MAVEN,
    ControlTowerEcosystem.NPM: ECOSYSTEM_NPM,
    ControlTowerEcosystem.PYPI: ECOSYSTEM_PYPI,
    ControlTowerEcosystem.RUBYGEMS: ECOSYSTEM_RUBYGEMS,
    ControlTowerEcosystem.PACKAGIST: ECOSYSTEM_PACKAGIST,
    ControlTowerEcosystem.CARGO: ECOSYSTEM_CARGO,
    ControlTowerEcosystem.GITHUB_ACTIONS: ECOSYSTEM_GITHUB_ACTIONS,
    ControlTowerEcosystem.TERRAFORM_MODULE: ECOSYSTEM_TERRAFORM_MODULE,
    ControlTowerEcosystem.TERRAFORM_PROVIDER: ECOSYSTEM_TERRAFORM_PROVIDER,
}


def model_ecosystem(ecosystem: ControlTowerEcosystem) -> str:
    """Map a control tower ecosystem to the model ecosystem name, or "unknown"."""
    return _MODEL_ECOSYSTEMS.get(ecosystem, "unknown")


@dataclass(frozen=True)
class PackageDetails:
    """Name, version and ecosystem of a package as found in a lockfile."""

    name: str
    version: str
    ecosystem: str
    compare_as: str = ""


def new_package_detail(ecosystem: str, name: str, version: str) -> PackageDetails:
    return PackageDetails(name=name, version=version, ecosystem=ecosystem, compare_as=ecosystem)


@dataclass
class PackageManifestSource:
    """Where a manifest came from: a local directory, a PURL or a git repository."""

    type: ManifestSourceType = ManifestSourceType.LOCAL
    namespace: str = ""
    path: str = ""
    display_path: str = ""

    def effective_display_path(self) -> str:
        if self.type in (ManifestSourceType.LOCAL, ManifestSourceType.PURL):
            return _path_join(self.namespace, self.path)
        return self.display_path


@dataclass(eq=False)
class PackageManifest:
    """A manifest such as pom.xml or requirements.txt and its packages."""

    source: PackageManifestSource
    path: str
    ecosystem: str
    packages: list["Package"] = field(default_factory=list)
    dependency_graph: Optional[DependencyGraph["Package"]] = field(default_factory=DependencyGraph)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_local(cls, path: str, ecosystem: str) -> "PackageManifest":
        source = PackageManifestSource(
            type=ManifestSourceType.LOCAL, namespace=_path_dir(path), path=_path_base(path)
        )
        return cls(source=source, path=path, ecosystem=ecosystem)

    @classmethod
    def from_purl(cls, purl: str, ecosystem: str) -> "PackageManifest":
        source = PackageManifestSource(
            type=ManifestSourceType.PURL, namespace=_path_dir(purl), path=_path_base(purl)
        )
        return cls(source=source, path=purl, ecosystem=ecosystem)

    @classmethod
    def from_github(
        cls, repo: str, repo_relative_path: str, real_path: str, ecosystem: str
    ) -> "PackageManifest":
        source = PackageManifestSource(
            type=ManifestSourceType.GIT_REPOSITORY, namespace=repo, path=repo_relative_path
        )
        return cls(source=source, path=real_path, ecosystem=ecosystem)

    def update_source_as_git_repository(self, repo: str, repo_relative_path: str) -> None:
        self.source = PackageManifestSource(
            type=ManifestSourceType.GIT_REPOSITORY, namespace=repo, path=repo_relative_path
        )

    def add_package(self, pkg: "Package") -> None:
        with self._lock:
            if pkg.manifest is None:
                pkg.manifest = self
            self.packages.append(pkg)
            if self.dependency_graph is not None:
                self.dependency_graph.add_node(pkg)

    def set_display_path(self, path: str) -> None:
        self.source.display_path = path

    def display_path(self) -> str:
        return self.source.effective_display_path()

    def get_packages(self) -> list["Package"]:
        """Packages from the dependency graph when present, else the flat list."""
        if self.dependency_graph is not None and self.dependency_graph.present:
            return self.dependency_graph.get_packages()
        return list(self.packages)

    def id(self) -> str:
        return _hashed_id(f"{self.ecosystem}/{self.path}")

    def packages_count(self) -> int:
        return len(self.get_packages())

    def control_tower_ecosystem(self) -> ControlTowerEcosystem:
        return _CONTROL_TOWER_ECOSYSTEMS.get(self.ecosystem, ControlTowerEcosystem.UNSPECIFIED)

    def spec_ecosystem(self) -> SpecEcosystem:
        return _SPEC_ECOSYSTEMS.get(self.ecosystem, SpecEcosystem.UNKNOWN_ECOSYSTEM)


@dataclass
class Package:
    """A version of a library declared as a dependency in a manifest."""

    details: PackageDetails
    insights: Any = None
    insights_v2: Any = None
    parent: Optional["Package"] = field(default=None, repr=False, compare=False)
    depth: int = 0
    manifest: Optional[PackageManifest] = field(default=None, repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.details.name

    @property
    def version(self) -> str:
        return self.details.version

    @property
    def ecosystem(self) -> str:
        return self.details.ecosystem

    def id(self) -> str:
        """Stable identifier of this package within a manifest."""
        return _hashed_id(
            f"{self.ecosystem.lower()}/{self.name.lower()}/{self.version.lower()}"
        )

    def short_name(self) -> str:
        return f"pkg:{self.ecosystem.lower()}/{self.name.lower()}@{self.version}"

    def _require_manifest(self) -> PackageManifest:
        if self.manifest is None:
            raise ValueError(f"package {self.short_name()} has no manifest")
        return self.manifest

    def spec_ecosystem(self) -> SpecEcosystem:
        return self._require_manifest().spec_ecosystem()

    def control_tower_ecosystem(self) -> ControlTowerEcosystem:
        return self._require_manifest().control_tower_ecosystem()

    def dependency_graph(self) -> Optional[DependencyGraph["Package"]]:
        """The manifest's dependency graph, or None when it is missing or not present."""
        if self.manifest is None:
            return None
        graph = self.manifest.dependency_graph
        if graph is None or not graph.present:
            return None
        return graph

    def dependency_path(self) -> list["Package"]:
        """Path from this package up to a root package."""
        graph = self.dependency_graph()
        if graph is None:
            return []
        return graph.path_to_root(self)

    def get_dependencies(self) -> list["Package"]:
        graph = self.dependency_graph()
        if graph is None:
            raise ValueError("dependency graph not available")

        for node in graph.get_nodes():
            if node.root or node.data is None:
                continue
            other = node.data
            if (
                self.name != other.name
                and self.version != other.version
                and self.spec_ecosystem() != other.spec_ecosystem()
            ):
                continue
            return list(node.children)

        return []