"""Helpers for npm package layouts."""

from __future__ import annotations

import posixpath


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped.rsplit("/", 1)[-1]


def _dir(path: str) -> str:
    return posixpath.normpath(posixpath.dirname(path) or ".")


def npm_node_modules_package_path_to_name(name: str) -> str:
    """Return the package name, with scope if any, from a node_modules path."""
    maybe_scope = _base(_dir(name))
    package_name = _base(name)
    if maybe_scope.startswith("@"):
        return f"{maybe_scope}/{package_name}"
    return package_name