"""Builds a code property graph of modules, their imports and their functions."""

from __future__ import annotations

import dataclasses
import enum
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from depvet.code.entities import (
    PACKAGE_ENTITY_SOURCE_TYPE_APP,
    PACKAGE_ENTITY_SOURCE_TYPE_IMPORT,
    FunctionDecl,
    GraphEdge,
    Package,
)
from depvet.code.lang import SourceLanguage, UnsupportedLanguageFeature
from depvet.code.mapping import ModuleMappingError, lang_map_file_to_module, lang_map_module_to_file
from depvet.code.nodes import CST
from depvet.code.source import SourceFile, SourceRepository
from depvet.log import get_logger

_LANGUAGE_ERRORS = (UnsupportedLanguageFeature, ValueError, LookupError)
_STOP = object()


class GraphStorage(ABC):
    """Where the edges of the code graph are stored."""

    @abstractmethod
    def link(self, edge: GraphEdge) -> None:
        """Store ``edge`` together with the nodes it joins."""


@dataclass
class CodeGraphBuilderConfig:
    """Whether to follow imports into files, and how many workers to run."""

    recursive_import: bool = False
    concurrency: int = 1


@dataclass
class CodeGraphBuilderMetrics:
    go_routine_count: int = 0
    error_count: int = 0
    files_processed: int = 0
    files_in_queue: int = 0
    imports_count: int = 0
    functions_count: int = 0


class CodeGraphBuilderEventKind(str, enum.Enum):
    FILE_QUEUED = "file_queued"
    FILE_PROCESSED = "file_processed"
    IMPORT_PROCESSED = "import_processed"
    FUNCTION_PROCESSED = "function_processed"


@dataclass(frozen=True)
class CodeGraphBuilderEvent:
    kind: CodeGraphBuilderEventKind
    data: Any


EventHandler = Callable[[CodeGraphBuilderEvent, CodeGraphBuilderMetrics], None]


class CodeGraphBuilder:
    """Parses every file of a repository and links what it finds into storage.

    Event handlers are called from worker threads with a snapshot of the
    metrics and must be thread safe. Exceptions they raise are logged.
    """

    def __init__(
        self,
        config: CodeGraphBuilderConfig,
        repository: SourceRepository,
        lang: SourceLanguage,
        storage: GraphStorage,
    ) -> None:
        self.config = dataclasses.replace(config, concurrency=max(config.concurrency, 1))
        self.repository = repository
        self.lang = lang
        self.storage = storage
        self.metrics = CodeGraphBuilderMetrics(go_routine_count=self.config.concurrency)
        self._event_handlers: dict[str, EventHandler] = {}
        self._lock = threading.Lock()
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._file_cache: set[str] = set()
        self._function_decl_cache: dict[str, str] = {}

    def register_event_handler(self, name: str, handler: EventHandler) -> None:
        """Add ``handler`` under ``name``; a name already taken is left as it is."""
        if name in self._event_handlers:
            get_logger().warning("Event handler already registered: %s", name)
            return
        self._event_handlers[name] = handler

    def build(self) -> None:
        """Process every source file of the repository and the files they import.

        An error from enumerating the repository is raised once the files
        already queued have been processed.
        """
        self._queue = queue.Queue()
        self._file_cache = set()
        self._function_decl_cache = {}

        get_logger().debug("Building code graph using repository: %s", self.repository.name())

        workers = [
            threading.Thread(target=self._process_files, daemon=True)
            for _ in range(self.config.concurrency)
        ]
        for worker in workers:
            worker.start()

        error: Optional[Exception] = None
        try:
            for file in self.repository.enumerate_source_files():
                self._enqueue(file)
        except Exception as exc:
            error = exc

        self._queue.join()
        for _ in workers:
            self._queue.put(_STOP)
        for worker in workers:
            worker.join()

        if error is not None:
            raise error

    def _enqueue(self, file: SourceFile) -> None:
        with self._lock:
            self.metrics.files_in_queue += 1
            if file.path in self._file_cache:
                get_logger().debug("Skipping already processed file: %s", file.path)
            else:
                self._file_cache.add(file.path)
                self._queue.put(file)

        self._notify(CodeGraphBuilderEventKind.FILE_QUEUED, file)

    def _process_files(self) -> None:
        while True:
            file = self._queue.get()
            if file is _STOP:
                self._queue.task_done()
                return

            try:
                try:
                    self._build_for_file(file)
                except Exception as exc:
                    get_logger().error("Failed to process code graph for: %s: %s", file.path, exc)
                    with self._lock:
                        self.metrics.error_count += 1

                with self._lock:
                    self.metrics.files_processed += 1

                self._notify(CodeGraphBuilderEventKind.FILE_PROCESSED, file)
            finally:
                self._queue.task_done()

    def _build_for_file(self, file: SourceFile) -> None:
        get_logger().debug("Parsing source file: %s", file.path)
        cst = self.lang.parse_source(file)
        self._process_import_nodes(cst, file)
        self._process_function_declarations(cst, file)

    def _module_of(self, file: SourceFile) -> str:
        return lang_map_file_to_module(file, self.repository, self.lang, self.config.recursive_import)

    def _process_import_nodes(self, cst: CST, current_file: SourceFile) -> None:
        log = get_logger()
        use_imports = self.config.recursive_import

        try:
            current_module = self._module_of(current_file)
        except ModuleMappingError as exc:
            log.error("Failed to map file to module: %s", exc)
            return

        this_node = self._package_node(current_module, current_file)

        try:
            import_nodes = self.lang.get_import_nodes(cst)
        except _LANGUAGE_ERRORS as exc:
            log.error("Failed to get import nodes: %s", exc)
            return

        for import_node in import_nodes:
            import_name = import_node.import_name
            log.debug("Processing import node: %s", import_name)

            try:
                source_file = lang_map_module_to_file(
                    import_name, current_file, self.repository, self.lang, use_imports
                )
            except ModuleMappingError as exc:
                log.warning("Failed to map import node: '%s' to file: %s", import_name, exc)
                source_file = SourceFile(path="")
            else:
                log.debug("Import node: %s resolved to path: %s", import_name, source_file.path)
                if use_imports:
                    self._enqueue(source_file)

            # A file relative import is renamed to its module so that one
            # module gives one node.
            node_name = import_name
            if source_file.path:
                try:
                    node_name = self._module_of(source_file)
                except ModuleMappingError as exc:
                    log.error("[Import Fixing]: Failed to map file to module: %s", exc)
                    return

            imported = self._package_node(node_name, source_file)
            try:
                self.storage.link(this_node.imports(imported))
            except Exception as exc:
                log.error("Failed to link import node: %s", exc)

            with self._lock:
                self.metrics.imports_count += 1

            self._notify(CodeGraphBuilderEventKind.IMPORT_PROCESSED, import_name)

    def _process_function_declarations(self, cst: CST, current_file: SourceFile) -> None:
        log = get_logger()

        try:
            module_name = self._module_of(current_file)
        except ModuleMappingError as exc:
            log.error("Failed to map file to module: %s", exc)
            return

        try:
            declarations = self.lang.get_function_declaration_nodes(cst)
        except _LANGUAGE_ERRORS as exc:
            log.error("Failed to get function declaration nodes: %s", exc)
            return

        this_node = self._package_node(module_name, current_file)

        for declaration in declarations:
            function_id = declaration.id()
            with self._lock:
                if self._function_decl_cache.get(module_name) == function_id:
                    continue

            log.debug("Processing function declaration: %s/%s", module_name, function_id)

            fn = FunctionDecl(
                id=function_id,
                source_file_path=current_file.path,
                source_file_type=self._source_type(current_file),
                function_name=declaration.name,
                container_name=declaration.container,
            )
            try:
                self.storage.link(this_node.declares_function(fn))
            except Exception as exc:
                log.error("Failed to link function declaration: %s", exc)

            with self._lock:
                self.metrics.functions_count += 1

            self._notify(CodeGraphBuilderEventKind.FUNCTION_PROCESSED, function_id)

            with self._lock:
                self._function_decl_cache[module_name] = function_id

    def _package_node(self, name: str, file: SourceFile) -> Package:
        return Package(
            id=name,
            name=name,
            source_file_path=file.path,
            source_file_type=self._source_type(file),
        )

    @staticmethod
    def _source_type(file: SourceFile) -> str:
        if file.is_imported_file():
            return PACKAGE_ENTITY_SOURCE_TYPE_IMPORT
        return PACKAGE_ENTITY_SOURCE_TYPE_APP

    def _notify(self, kind: CodeGraphBuilderEventKind, data: Any) -> None:
        event = CodeGraphBuilderEvent(kind=kind, data=data)
        with self._lock:
            snapshot = dataclasses.replace(self.metrics)
        for name, handler in list(self._event_handlers.items()):
            try:
                handler(event, snapshot)
            except Exception as exc:
                get_logger().warning("Failed to notify event handler: %s: %s", name, exc)