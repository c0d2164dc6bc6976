"""Syntax trees of single source files and the nodes extracted from them."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Callable, Optional

Parser = Callable[[bytes], Any]


@dataclass(eq=False)
class CST:
    """The parsed tree of one source file together with its source bytes.

    Nodes may carry ``start_byte``/``end_byte`` offsets, or ``lineno``,
    ``col_offset``, ``end_lineno`` and ``end_col_offset`` positions whose
    columns count UTF-8 bytes. Plain strings stand for themselves.
    """

    tree: Any
    code: bytes
    parser: Parser

    @property
    def root(self) -> Any:
        return self.tree

    @cached_property
    def _line_starts(self) -> list[int]:
        starts = [0]
        offset = 0
        for line in self.code.splitlines(keepends=True):
            offset += len(line)
            starts.append(offset)
        return starts

    def _span(self, node: Any) -> tuple[int, int]:
        start = getattr(node, "start_byte", None)
        end = getattr(node, "end_byte", None)
        if start is not None and end is not None:
            return start, end

        positions = [
            getattr(node, attr, None)
            for attr in ("lineno", "col_offset", "end_lineno", "end_col_offset")
        ]
        if any(value is None for value in positions):
            raise TypeError(f"node has no source position: {node!r}")

        lineno, col, end_lineno, end_col = positions
        starts = self._line_starts
        return starts[lineno - 1] + col, starts[end_lineno - 1] + end_col

    def content(self, node: Any) -> str:
        """Return the source text covered by ``node``; empty for None."""
        if node is None:
            return ""
        if isinstance(node, str):
            return node
        start, end = self._span(node)
        return self.code[start:end].decode("utf-8", errors="replace")

    def sub_tree(self, node: Any) -> "CST":
        """Parse the text of ``node`` on its own into a new tree."""
        data = self.content(node).encode("utf-8")
        return CST(tree=self.parser(data), code=data, parser=self.parser)


@dataclass
class ImportNode:
    """An imported module, the item taken from it and its alias."""

    cst: CST
    module_name: Any = None
    module_item: Any = None
    module_alias: Any = None

    @property
    def import_name(self) -> str:
        return self.cst.content(self.module_name)

    @property
    def import_item(self) -> str:
        return self.cst.content(self.module_item)

    @property
    def import_alias(self) -> str:
        return self.cst.content(self.module_alias)


@dataclass
class FunctionNode:
    """A function declaration and the class or module that contains it."""

    cst: CST
    declaration: Any = None
    container_node: Any = None
    name_node: Any = None
    args: Any = None
    body: Any = None

    @property
    def name(self) -> str:
        return self.cst.content(self.name_node)

    @property
    def container(self) -> str:
        return self.cst.content(self.container_node)

    def id(self) -> str:
        """Human readable identifier for use in graph queries."""
        return f"{self.container}/{self.name}"


@dataclass
class FunctionCallNode:
    """A call expression: its receiver, the called name and its arguments."""

    cst: CST
    call: Any = None
    receiver_node: Any = None
    callee_node: Any = None
    args: Any = None
    caller: Optional[FunctionNode] = None

    @property
    def receiver(self) -> str:
        return self.cst.content(self.receiver_node)

    @property
    def callee(self) -> str:
        return self.cst.content(self.callee_node)