"""Directed acyclic graph of packages in a manifest."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Protocol, TypeVar


class Identifiable(Protocol):
    def id(self) -> str: ...


T = TypeVar("T", bound=Identifiable)


@dataclass
class DependencyGraphNode(Generic[T]):
    """A node holding its data, its outgoing edges and whether it is a root."""

    data: T
    children: list[T] = field(default_factory=list)
    root: bool = False

    def set_root(self, root: bool) -> None:
        self.root = root


class DependencyGraph(Generic[T]):
    """Graph of nodes keyed by their ``id()``.

    ``present`` tells whether the graph carries real dependency information.
    """

    def __init__(self) -> None:
        self.present = False
        self._nodes: dict[str, DependencyGraphNode[T]] = {}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyGraph):
            return NotImplemented
        return self.present == other.present and self._nodes == other._nodes

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"DependencyGraph(present={self.present!r}, nodes={self._nodes!r})"

    def clear(self) -> None:
        self.present = False
        self._nodes = {}

    def add_node(self, node: T) -> None:
        self._find_or_create(node)

    def is_root(self, data: T) -> bool:
        node = self._nodes.get(data.id())
        return node.root if node is not None else False

    def add_root_node(self, node: T) -> None:
        self._find_or_create(node).root = True

    def add_dependency(self, from_node: T, to_node: T) -> None:
        """Add an edge from ``from_node`` to ``to_node``."""
        source = self._find_or_create(from_node)
        target = self._find_or_create(to_node)
        source.children.append(target.data)

    def get_dependencies(self, pkg: T) -> list[T]:
        """Outgoing edges of ``pkg``."""
        node = self._nodes.get(pkg.id())
        return list(node.children) if node is not None else []

    def get_dependents(self, pkg: T) -> list[T]:
        """Incoming edges of ``pkg``."""
        pkg_id = pkg.id()
        if pkg_id not in self._nodes:
            return []
        return [
            node.data
            for node in self._nodes.values()
            for child in node.children
            if child.id() == pkg_id
        ]

    def get_nodes(self) -> list[DependencyGraphNode[T]]:
        return list(self._nodes.values())

    def get_packages(self) -> list[T]:
        return [node.data for node in self._nodes.values()]

    def path_to_root(self, pkg: T) -> list[T]:
        """Walk from ``pkg`` through dependents, lowest id first, towards a root."""
        start = self._nodes.get(pkg.id())
        if start is None:
            return []

        path = [start.data]
        if start.root:
            return path

        visited: set[str] = set()
        while path:
            dependents = sorted(self.get_dependents(path[-1]), key=lambda d: d.id())
            if not dependents:
                break

            step = next((d for d in dependents if d.id() not in visited), None)
            if step is None:
                break

            path.append(step)
            visited.add(step.id())

            reached = self._nodes.get(step.id())
            if reached is not None and reached.root:
                break

        return path

    def to_json(self, encode: Callable[[T], Any]) -> str:
        """Serialize the graph, using ``encode`` to turn node data into JSON values."""
        return json.dumps(
            {
                "present": self.present,
                "nodes": {
                    node_id: {
                        "data": encode(node.data),
                        "children": [encode(child) for child in node.children],
                        "root": node.root,
                    }
                    for node_id, node in self._nodes.items()
                },
            }
        )

    @classmethod
    def from_json(cls, text: str | bytes, decode: Callable[[Any], T]) -> "DependencyGraph[T]":
        """Rebuild a graph written by ``to_json``; ``decode`` rebuilds node data."""
        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise ValueError("dependency graph JSON must be an object")

        graph: DependencyGraph[T] = cls()
        graph.present = bool(raw.get("present", False))
        for node_id, node in (raw.get("nodes") or {}).items():
            data = node.get("data")
            graph._nodes[node_id] = DependencyGraphNode(
                data=decode(data) if data is not None else None,  # type: ignore[arg-type]
                children=[decode(child) for child in node.get("children") or []],
                root=bool(node.get("root", False)),
            )
        return graph

    def _find_or_create(self, data: T) -> DependencyGraphNode[T]:
        node_id = data.id()
        node = self._nodes.get(node_id)
        if node is None:
            node = DependencyGraphNode(data=data)
            self._nodes[node_id] = node
        return node