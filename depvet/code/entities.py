"""Entities of the code property graph and the edges that relate them."""

from __future__ import annotations

from dataclasses import dataclass, field

FUNCTION_DECL_ENTITY = "function_decl"

FUNCTION_DECL_PROPERTY_NAME = "name"
FUNCTION_DECL_PROPERTY_CONTAINER_NAME = "containerName"
FUNCTION_DECL_PROPERTY_SOURCE_FILE_PATH = "sourceFilePath"
FUNCTION_DECL_PROPERTY_SOURCE_FILE_TYPE = "sourceFileType"

PACKAGE_ENTITY = "package"

PACKAGE_ENTITY_SOURCE_TYPE_APP = "app"
PACKAGE_ENTITY_SOURCE_TYPE_IMPORT = "import"

PACKAGE_PROPERTY_NAME = "name"
PACKAGE_PROPERTY_SOURCE_FILE_PATH = "sourceFilePath"
PACKAGE_PROPERTY_SOURCE_FILE_TYPE = "sourceFileType"

PACKAGE_RELATIONSHIP_IMPORTS = "imports"
PACKAGE_RELATIONSHIP_DECLARES_FUNCTION = "declares_function"


@dataclass
class GraphNode:
    """A labelled node with string properties."""

    id: str
    label: str
    properties: dict[str, str] = field(default_factory=dict)


@dataclass
class GraphEdge:
    """A named, directed relationship between two nodes."""

    name: str
    from_node: GraphNode
    to_node: GraphNode


@dataclass
class FunctionDecl:
    """A function declared in a module, possibly inside a class."""

    id: str
    container_name: str = ""
    function_name: str = ""
    source_file_path: str = ""
    source_file_type: str = ""

    def properties(self) -> dict[str, str]:
        return {
            FUNCTION_DECL_PROPERTY_NAME: self.function_name,
            FUNCTION_DECL_PROPERTY_CONTAINER_NAME: self.container_name,
            FUNCTION_DECL_PROPERTY_SOURCE_FILE_PATH: self.source_file_path,
            FUNCTION_DECL_PROPERTY_SOURCE_FILE_TYPE: self.source_file_type,
        }

    def _node(self) -> GraphNode:
        return GraphNode(id=self.id, label=FUNCTION_DECL_ENTITY, properties=self.properties())


@dataclass
class Package:
    """A module or package, from the application or from imported code."""

    id: str
    name: str = ""
    source_file_path: str = ""
    source_file_type: str = ""

    def properties(self) -> dict[str, str]:
        return {
            PACKAGE_PROPERTY_NAME: self.name,
            PACKAGE_PROPERTY_SOURCE_FILE_PATH: self.source_file_path,
            PACKAGE_PROPERTY_SOURCE_FILE_TYPE: self.source_file_type,
        }

    def _node(self) -> GraphNode:
        return GraphNode(id=self.id, label=PACKAGE_ENTITY, properties=self.properties())

    def imports(self, another: "Package") -> GraphEdge:
        """Edge stating that this package imports ``another``."""
        return GraphEdge(
            name=PACKAGE_RELATIONSHIP_IMPORTS, from_node=self._node(), to_node=another._node()
        )

    def declares_function(self, fn: FunctionDecl) -> GraphEdge:
        """Edge stating that this package declares ``fn``."""
        return GraphEdge(
            name=PACKAGE_RELATIONSHIP_DECLARES_FUNCTION, from_node=self._node(), to_node=fn._node()
        )