"""Mapping between source files and the module names a language gives them."""

from __future__ import annotations

from depvet.code.lang import SourceLanguage, UnsupportedLanguageFeature
from depvet.code.source import SourceFile, SourceRepository

_LOOKUP_ERRORS = (LookupError, ValueError, OSError, UnsupportedLanguageFeature)


class ModuleMappingError(LookupError):
    """Raised when a file cannot be mapped to a module or a module to a file."""


def lang_map_file_to_module(
    file: SourceFile,
    repo: SourceRepository,
    lang: SourceLanguage,
    include_imports: bool,
) -> str:
    """Return the module name of ``file``.

    The path relative to the repository root is what module loaders use to
    identify a module; the language turns it into a module name.
    """
    try:
        rel_path = repo.get_relative_path(file.path, include_imports)
    except _LOOKUP_ERRORS as exc:
        raise ModuleMappingError(f"failed to get relative path: {exc}") from exc

    try:
        return lang.resolve_import_name_from_path(rel_path)
    except _LOOKUP_ERRORS as exc:
        raise ModuleMappingError(f"failed to resolve import name from path: {exc}") from exc


def lang_map_module_to_file(
    module_name: str,
    current_file: SourceFile,
    repo: SourceRepository,
    lang: SourceLanguage,
    include_imports: bool,
) -> SourceFile:
    """Return the first existing repository file that ``module_name`` may live in."""
    try:
        rel_paths = lang.resolve_import_paths_from_name(current_file, module_name, include_imports)
    except _LOOKUP_ERRORS as exc:
        raise ModuleMappingError(f"failed to resolve import paths from name: {exc}") from exc

    for rel_path in rel_paths:
        try:
            return repo.get_source_file_by_path(rel_path, include_imports)
        except (LookupError, OSError):
            continue

    raise ModuleMappingError(f"no source file found for module: {module_name}")