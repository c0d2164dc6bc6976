"""The interface a source language offers to code analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from depvet.code.nodes import CST, FunctionCallNode, FunctionNode, ImportNode
from depvet.code.source import SourceFile


class UnsupportedLanguageFeature(Exception):
    """Raised when a source language lacks an analysis primitive."""


@dataclass
class SourceLanguageMeta:
    """Declarative metadata for a source language."""

    source_file_globs: list[str] = field(default_factory=list)


class SourceLanguage:
    """Base source language; subclasses override the primitives they support.

    ``parser`` turns source bytes into a syntax tree.
    """

    def __init__(self, parser: Optional[Callable[[bytes], Any]] = None) -> None:
        self._parser = parser

    def get_meta(self) -> SourceLanguageMeta:
        return SourceLanguageMeta()

    def parse_source(self, file: SourceFile) -> CST:
        """Read ``file`` and parse it into a syntax tree."""
        if self._parser is None:
            raise UnsupportedLanguageFeature("language does not support parsing")
        with file.open() as stream:
            data = stream.read()
        return CST(tree=self._parser(data), code=data, parser=self._parser)

    def get_import_nodes(self, cst: CST) -> list[ImportNode]:
        raise UnsupportedLanguageFeature("language does not support import nodes")

    def get_function_declaration_nodes(self, cst: CST) -> list[FunctionNode]:
        raise UnsupportedLanguageFeature("language does not support function declaration nodes")

    def get_function_call_nodes(self, cst: CST) -> list[FunctionCallNode]:
        raise UnsupportedLanguageFeature("language does not support function call nodes")

    def resolve_import_name_from_path(self, rel_path: str) -> str:
        """Map a repository relative path to a module name."""
        raise UnsupportedLanguageFeature("language does not support import name resolution")

    def resolve_import_paths_from_name(
        self, current_file: SourceFile, import_name: str, include_imports: bool
    ) -> list[str]:
        """Map an import name to the relative paths it may live at."""
        raise UnsupportedLanguageFeature("language does not support import path resolution")