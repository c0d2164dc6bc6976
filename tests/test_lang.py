import ast

import pytest

from depvet.code.lang import SourceLanguage, SourceLanguageMeta, UnsupportedLanguageFeature
from depvet.code.nodes import CST
from depvet.code.source import (
    FileSystemSourceRepository,
    FileSystemSourceRepositoryConfig,
    SourceFile,
)


def test_default_meta_has_no_globs():
    assert SourceLanguage().get_meta() == SourceLanguageMeta(source_file_globs=[])


@pytest.mark.parametrize(
    "call, message",
    [
        (lambda lang, cst: lang.get_import_nodes(cst), "import nodes"),
        (lambda lang, cst: lang.get_function_declaration_nodes(cst), "function declaration nodes"),
        (lambda lang, cst: lang.get_function_call_nodes(cst), "function call nodes"),
        (lambda lang, cst: lang.resolve_import_name_from_path("a.py"), "import name resolution"),
        (
            lambda lang, cst: lang.resolve_import_paths_from_name(SourceFile(path="a.py"), "a", False),
            "import path resolution",
        ),
    ],
)
def test_base_language_primitives_are_unsupported(call, message):
    cst = CST(tree=None, code=b"", parser=ast.parse)
    with pytest.raises(UnsupportedLanguageFeature, match=message):
        call(SourceLanguage(ast.parse), cst)


def test_parse_source_reads_file(tmp_path):
    (tmp_path / "m.py").write_bytes(b"x = 1\n")
    repo = FileSystemSourceRepository(FileSystemSourceRepositoryConfig(source_paths=[str(tmp_path)]))
    source = repo.get_source_file_by_path("m.py", False)

    cst = SourceLanguage(ast.parse).parse_source(source)
    assert cst.code == b"x = 1\n"
    assert cst.content(cst.root.body[0]) == "x = 1"


def test_parse_source_without_parser_raises(tmp_path):
    (tmp_path / "m.py").write_bytes(b"")
    repo = FileSystemSourceRepository(FileSystemSourceRepositoryConfig(source_paths=[str(tmp_path)]))
    with pytest.raises(UnsupportedLanguageFeature):
        SourceLanguage().parse_source(repo.get_source_file_by_path("m.py", False))


def test_parse_source_missing_file_raises(tmp_path):
    repo = FileSystemSourceRepository(FileSystemSourceRepositoryConfig(source_paths=[str(tmp_path)]))
    missing = SourceFile(path=str(tmp_path / "gone.py"), repository=repo)
    with pytest.raises(FileNotFoundError):
        SourceLanguage(ast.parse).parse_source(missing)


def test_parse_errors_propagate(tmp_path):
    (tmp_path / "bad.py").write_bytes(b"def (:\n")
    repo = FileSystemSourceRepository(FileSystemSourceRepositoryConfig(source_paths=[str(tmp_path)]))
    with pytest.raises(SyntaxError):
        SourceLanguage(ast.parse).parse_source(repo.get_source_file_by_path("bad.py", False))