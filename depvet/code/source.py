"""Source files and the repositories they are found in."""

from __future__ import annotations

import os
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, BinaryIO, Iterator, Optional

from depvet.log import get_logger

if TYPE_CHECKING:
    from depvet.code.lang import SourceLanguage


class SourceFileNotFoundError(LookupError):
    """Raised when a source file or path is not part of a repository."""


@dataclass(frozen=True)
class SourceFile:
    """A file in a source repository, identified by its repository path."""

    path: str
    id: str = ""
    repository: Optional["SourceRepository"] = field(default=None, compare=False, repr=False)

    def open(self) -> BinaryIO:
        """Open the file for reading bytes through its repository."""
        if self.repository is None:
            raise SourceFileNotFoundError(f"source file has no repository: {self.path}")
        return self.repository.open_source_file(self)

    def is_imported_file(self) -> bool:
        """True unless the file lies under the repository's source paths."""
        if self.repository is None:
            return True
        try:
            self.repository.get_relative_path(self.path, False)
        except SourceFileNotFoundError:
            return True
        return False


class SourceRepository(ABC):
    """Finds first and third party source code, wherever it is stored."""

    @abstractmethod
    def name(self) -> str:
        """Name of the repository."""

    @abstractmethod
    def enumerate_source_files(self) -> Iterator[SourceFile]:
        """Yield every source file of the repository."""

    @abstractmethod
    def get_source_file_by_path(self, path: str, include_imports: bool) -> SourceFile:
        """Find a source file by repository relative path."""

    @abstractmethod
    def open_source_file(self, file: SourceFile) -> BinaryIO:
        """Open a source file for reading bytes."""

    @abstractmethod
    def configure_for_language(self, language: "SourceLanguage") -> None:
        """Adapt the repository to a source language."""

    @abstractmethod
    def get_relative_path(self, path: str, include_imports: bool) -> str:
        """Return ``path`` relative to the first repository root holding it."""


@dataclass
class FileSystemSourceRepositoryConfig:
    """Directories to search and base-name globs to include or exclude."""

    source_paths: list[str] = field(default_factory=list)
    excluded_globs: list[str] = field(default_factory=list)
    included_globs: list[str] = field(default_factory=list)
    import_paths: list[str] = field(default_factory=list)


class FileSystemSourceRepository(SourceRepository):
    """Source files held in local directories."""

    def __init__(self, config: FileSystemSourceRepositoryConfig | None = None) -> None:
        config = config or FileSystemSourceRepositoryConfig()
        self.config = FileSystemSourceRepositoryConfig(
            source_paths=list(config.source_paths),
            excluded_globs=list(config.excluded_globs),
            included_globs=list(config.included_globs),
            import_paths=list(config.import_paths),
        )

    def name(self) -> str:
        return "FileSystemSourceRepository"

    def get_relative_path(self, path: str, include_imports: bool) -> str:
        roots = list(self.config.source_paths)
        if include_imports:
            roots.extend(self.config.import_paths)

        for root in roots:
            if os.path.isabs(root) != os.path.isabs(path):
                continue
            try:
                rel_path = os.path.relpath(path, root)
            except ValueError:
                continue
            if rel_path.startswith(".."):
                continue
            return rel_path

        raise SourceFileNotFoundError(f"path not found in source or import paths: {path}")

    def configure_for_language(self, language: "SourceLanguage") -> None:
        self.config.included_globs.extend(language.get_meta().source_file_globs)

    def enumerate_source_files(self) -> Iterator[SourceFile]:
        get_logger().debug("Enumerating source files with config: %s", self.config)
        for source_path in self.config.source_paths:
            yield from self._walk(source_path)

    def get_source_file_by_path(self, path: str, include_imports: bool) -> SourceFile:
        """Search import paths first when ``include_imports``, then source paths."""
        roots: list[str] = []
        if include_imports:
            roots.extend(self.config.import_paths)
        roots.extend(self.config.source_paths)

        for root in roots:
            if not os.path.isdir(root):
                continue
            candidate = os.path.join(root, path)
            if os.path.exists(candidate):
                return SourceFile(path=candidate, repository=self)

        raise SourceFileNotFoundError(f"source file not found: {path}")

    def open_source_file(self, file: SourceFile) -> BinaryIO:
        return open(file.path, "rb")

    def is_acceptable_source_file(self, path: str) -> bool:
        """Reject base names matching an excluded glob; then require an included
        glob to match, unless there are none."""
        base_name = os.path.basename(path)

        if any(fnmatchcase(base_name, glob) for glob in self.config.excluded_globs):
            return False

        if not self.config.included_globs:
            return True

        return any(fnmatchcase(base_name, glob) for glob in self.config.included_globs)

    def _walk(self, path: str) -> Iterator[SourceFile]:
        info = os.lstat(path)
        if stat.S_ISDIR(info.st_mode):
            with os.scandir(path) as entries:
                children = sorted(entries, key=lambda entry: entry.name)
            for child in children:
                yield from self._walk(child.path)
            return

        if not self.is_acceptable_source_file(path):
            get_logger().debug("Ignoring file: %s", path)
            return

        yield SourceFile(path=path, repository=self)