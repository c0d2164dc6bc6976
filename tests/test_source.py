import os

import pytest

from depvet.code.lang import SourceLanguage, SourceLanguageMeta
from depvet.code.source import (
    FileSystemSourceRepository,
    FileSystemSourceRepositoryConfig,
    SourceFile,
    SourceFileNotFoundError,
)


@pytest.mark.parametrize(
    "path, excluded, included, want",
    [
        ("/a/b/foo.go", [], [], True),
        ("/a/b/foo.go", ["*.go"], [], False),
        ("/a/b/foo.go", [], ["*.go"], True),
        ("/a/b/foo.go", ["*.go"], ["*.go"], False),
    ],
    ids=["no globs", "excluded glob", "included glob", "excluded and included globs"],
)
def test_is_acceptable_source_file(path, excluded, included, want):
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(excluded_globs=excluded, included_globs=included)
    )
    assert repo.is_acceptable_source_file(path) is want


@pytest.mark.parametrize(
    "path, source_paths, import_paths, include_imports, want",
    [
        ("/a/b/c/foo.go", ["/a/b"], [], False, "c/foo.go"),
        ("/a/b/c/foo.go", ["/a/b"], ["/a/b/c"], True, "c/foo.go"),
        ("/a/b/c/foo.go", ["/x/y"], ["/a/b"], True, "c/foo.go"),
        ("/a/b/c/foo.go", ["/x/y"], ["/a/b", "/a/b/c"], True, "c/foo.go"),
        ("./a/b/c/foo.go", ["./a/b"], ["/a/b/c"], True, "c/foo.go"),
    ],
    ids=[
        "relative in source path with no imports",
        "relative in source path with imports",
        "relative in import path with imports",
        "first match in import path",
        "relative in source path",
    ],
)
def test_get_relative_path(path, source_paths, import_paths, include_imports, want):
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(source_paths=source_paths, import_paths=import_paths)
    )
    assert repo.get_relative_path(path, include_imports) == want


def test_get_relative_path_no_match():
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(source_paths=["/x/y"], import_paths=["/z"])
    )
    with pytest.raises(SourceFileNotFoundError):
        repo.get_relative_path("/a/b/c/foo.go", True)


def test_import_paths_ignored_without_flag():
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(source_paths=["/x/y"], import_paths=["/a/b"])
    )
    with pytest.raises(SourceFileNotFoundError):
        repo.get_relative_path("/a/b/c/foo.go", False)


@pytest.fixture
def layout(tmp_path):
    src = tmp_path / "src"
    lib = tmp_path / "lib"
    (src / "sub").mkdir(parents=True)
    lib.mkdir()
    (src / "a.py").write_bytes(b"import os\n")
    (src / "sub" / "b.py").write_bytes(b"")
    (src / "c.txt").write_bytes(b"")
    (src / "mod.py").write_bytes(b"")
    (lib / "mod.py").write_bytes(b"")
    return src, lib


def test_enumerate_source_files_in_lexical_order(layout):
    src, _ = layout
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(source_paths=[str(src)], included_globs=["*.py"])
    )
    paths = [f.path for f in repo.enumerate_source_files()]
    assert paths == [str(src / "a.py"), str(src / "mod.py"), str(src / "sub" / "b.py")]
    assert all(f.repository is repo for f in repo.enumerate_source_files())


def test_enumerate_missing_root_raises(tmp_path):
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(source_paths=[str(tmp_path / "missing")])
    )
    with pytest.raises(FileNotFoundError):
        list(repo.enumerate_source_files())


def test_get_source_file_by_path_prefers_import_paths(layout):
    src, lib = layout
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(source_paths=[str(src)], import_paths=[str(lib)])
    )
    assert repo.get_source_file_by_path("mod.py", True).path == os.path.join(str(lib), "mod.py")
    assert repo.get_source_file_by_path("mod.py", False).path == os.path.join(str(src), "mod.py")
    with pytest.raises(SourceFileNotFoundError):
        repo.get_source_file_by_path("missing.py", True)


def test_is_imported_file(layout):
    src, lib = layout
    repo = FileSystemSourceRepository(
        FileSystemSourceRepositoryConfig(source_paths=[str(src)], import_paths=[str(lib)])
    )
    assert repo.get_source_file_by_path("a.py", True).is_imported_file() is False
    assert repo.get_source_file_by_path("mod.py", True).is_imported_file() is True
    assert SourceFile(path=str(src / "a.py")).is_imported_file() is True


def test_open_reads_file(layout):
    src, _ = layout
    repo = FileSystemSourceRepository(FileSystemSourceRepositoryConfig(source_paths=[str(src)]))
    with repo.get_source_file_by_path("a.py", False).open() as stream:
        assert stream.read() == b"import os\n"


def test_open_without_repository_raises():
    with pytest.raises(SourceFileNotFoundError):
        SourceFile(path="x.py").open()


def test_configure_for_language_adds_globs():
    class GlobLanguage(SourceLanguage):
        def get_meta(self):
            return SourceLanguageMeta(source_file_globs=["*.py"])

    config = FileSystemSourceRepositoryConfig()
    repo = FileSystemSourceRepository(config)
    repo.configure_for_language(GlobLanguage())
    assert repo.is_acceptable_source_file("/p/x.py") is True
    assert repo.is_acceptable_source_file("/p/x.txt") is False
    assert config.included_globs == []
    assert repo.name() == "FileSystemSourceRepository"