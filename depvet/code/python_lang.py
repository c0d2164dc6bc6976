"""Python support for code analysis."""

from __future__ import annotations

import ast
import os
from typing import Any, Iterator

from depvet.code.lang import SourceLanguage, SourceLanguageMeta
from depvet.code.nodes import CST, FunctionCallNode, FunctionNode, ImportNode
from depvet.code.source import SourceFile, SourceFileNotFoundError
from depvet.log import get_logger

_FUNCTION_TYPES = (ast.FunctionDef, ast.AsyncFunctionDef)


def _parse(data: bytes) -> ast.Module:
    return ast.parse(data)


def _walk(node: ast.AST, ancestors: tuple[ast.AST, ...] = ()) -> Iterator[tuple[ast.AST, tuple[ast.AST, ...]]]:
    """Yield every node with its ancestors, parents before children."""
    yield node, ancestors
    inner = ancestors + (node,)
    for child in ast.iter_child_nodes(node):
        yield from _walk(child, inner)


def _position(node: Any) -> tuple[int, int]:
    return getattr(node, "lineno", 0), getattr(node, "col_offset", 0)


def _in_source_order(nodes: list[Any]) -> list[Any]:
    return sorted(nodes, key=_position)


def _dir(path: str) -> str:
    return os.path.normpath(os.path.dirname(path) or ".")


class PythonSourceLanguage(SourceLanguage):
    """Python source files parsed into syntax trees."""

    def __init__(self) -> None:
        super().__init__(parser=_parse)

    def get_meta(self) -> SourceLanguageMeta:
        return SourceLanguageMeta(source_file_globs=["*.py"])

    def get_import_nodes(self, cst: CST) -> list[ImportNode]:
        """Imported modules with the item taken from them and its alias.

        ``import a.b`` gives only a module name; ``import a.b as c`` gives
        item ``a.b`` and alias ``c``; ``from m import x`` gives item and alias
        ``x``; ``from m import x as y`` gives item ``x`` and alias ``y``.
        Star imports are not reported.
        """
        statements = _in_source_order(
            [node for node, _ in _walk(cst.root) if isinstance(node, (ast.Import, ast.ImportFrom))]
        )

        import_nodes: list[ImportNode] = []
        for statement in statements:
            for alias in statement.names:
                node = self._import_node(cst, statement, alias)
                if node is None:
                    continue
                get_logger().debug(
                    "Found imported module: %s (%s) as (%s)",
                    node.import_name,
                    node.import_item,
                    node.import_alias,
                )
                import_nodes.append(node)
        return import_nodes

    @staticmethod
    def _import_node(cst: CST, statement: ast.stmt, alias: ast.alias) -> ImportNode | None:
        if isinstance(statement, ast.Import):
            if alias.asname is None:
                return ImportNode(cst=cst, module_name=alias.name)
            return ImportNode(
                cst=cst, module_name=alias.name, module_item=alias.name, module_alias=alias.asname
            )

        assert isinstance(statement, ast.ImportFrom)
        if alias.name == "*":
            return None
        module_name = "." * (statement.level or 0) + (statement.module or "")
        return ImportNode(
            cst=cst,
            module_name=module_name,
            module_item=alias.name,
            module_alias=alias.asname if alias.asname is not None else alias.name,
        )

    def get_function_declaration_nodes(self, cst: CST) -> list[FunctionNode]:
        """Function definitions, each with the nearest enclosing class if any."""
        found = [
            (node, ancestors)
            for node, ancestors in _walk(cst.root)
            if isinstance(node, _FUNCTION_TYPES)
        ]
        found.sort(key=lambda pair: _position(pair[0]))

        function_nodes: list[FunctionNode] = []
        for declaration, ancestors in found:
            container = next(
                (parent.name for parent in reversed(ancestors) if isinstance(parent, ast.ClassDef)),
                None,
            )
            function_node = FunctionNode(
                cst=cst,
                declaration=declaration,
                container_node=container,
                name_node=declaration.name,
                args=declaration.args,
                body=declaration.body,
            )
            get_logger().debug(
                "Found function declaration: %s/%s", function_node.container, function_node.name
            )
            function_nodes.append(function_node)
        return function_nodes

    def get_function_call_nodes(self, cst: CST) -> list[FunctionCallNode]:
        """Calls of a plain name, ``f(...)``, or of a name's attribute, ``obj.f(...)``."""
        calls = _in_source_order([node for node, _ in _walk(cst.root) if isinstance(node, ast.Call)])

        call_nodes: list[FunctionCallNode] = []
        for call in calls:
            arguments = [*call.args, *call.keywords]
            func = call.func
            if isinstance(func, ast.Name):
                call_node = FunctionCallNode(cst=cst, call=call, callee_node=func, args=arguments)
            elif isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name):
                call_node = FunctionCallNode(
                    cst=cst,
                    call=call,
                    receiver_node=func.value,
                    callee_node=func.attr,
                    args=arguments,
                )
            else:
                continue

            get_logger().debug("Found function call: (%s).%s", call_node.receiver, call_node.callee)
            call_nodes.append(call_node)
        return call_nodes

    def resolve_import_name_from_path(self, rel_path: str) -> str:
        """Turn ``a/b.py`` into ``a.b`` and ``a/__init__.py`` into ``a``."""
        if not rel_path:
            raise ValueError("path is empty")
        if rel_path.startswith("/"):
            raise ValueError(f"path is not relative: {rel_path}")

        name = rel_path.removesuffix("__init__.py")
        name = name.removesuffix("/")
        name = name.removesuffix(".py")
        return name.replace("/", ".")

    def resolve_import_paths_from_name(
        self, current_file: SourceFile, import_name: str, include_imports: bool
    ) -> list[str]:
        """Return ``name.py`` and ``name/__init__.py`` for an import name.

        A relative import is resolved against the directory of ``current_file``.
        """
        if not import_name:
            raise ValueError("import name is empty")

        if import_name.startswith("."):
            repository = current_file.repository
            if repository is None:
                raise ValueError(f"source file has no repository: {current_file.path}")
            target = os.path.normpath(os.path.join(_dir(current_file.path), import_name[1:]))
            try:
                import_name = repository.get_relative_path(target, include_imports)
            except SourceFileNotFoundError as exc:
                raise ValueError(f"failed to get relative path: {exc}") from exc

        base = import_name.replace(".", "/")
        return [f"{base}.py", f"{base}/__init__.py"]