# depvet

depvet is a library for reviewing the open source packages a project depends on. It provides:

- **Package models** (`depvet.models`): `PackageManifest`, `Package` and `PackageDetails`. It also maps ecosystem names to `ControlTowerEcosystem` and `SpecEcosystem`, and gives stable FNV-1a based ids (`Package.id`, `PackageManifest.id`, `id_gen`).
- **Dependency graphs** (`depvet.dependency_graph`): `DependencyGraph` has nodes keyed by `id()`. It finds dependencies and dependents, traces a path from a package to a root with `path_to_root`, and converts to and from JSON with `to_json(encode)` and `from_json(text, decode)`.
- **Package URLs** (`depvet.purl`): `parse_package_url` turns a `pkg:` URL into lockfile `PackageDetails`. `parse_purl_string` gives the raw `PackageUrl`. `purl_type_to_ecosystem` maps a PURL type to an ecosystem. Failures raise `PurlError`.
- **Exception rules** (`depvet.exceptions`): YAML files of time-limited exemptions for packages. Loaded rules go into a process-wide store, and `allowed_packages` filters a manifest's packages against them.
- **Code graphs** (`depvet.code`): source files are found on the file system, and Python imports, function declarations and calls are extracted with the standard `ast` module. Imports and declarations are mapped to modules and linked as package and function entities into a graph storage you supply.
- **Small utilities**:
  - `depvet.workqueue.WorkQueue`, a deduplicating thread-pool queue.
  - `depvet.regexcache.must_compile_and_cache`.
  - `depvet.tempfiles.create_empty_temp_file` and `copy_to_temp_file`.
  - `depvet.npm.npm_node_modules_package_path_to_name`.
  - `depvet.query.QueryResponse`, which holds query result rows.

## Installation

```
pip install .
```

With the test tools:

```
pip install ".[test]"
```

## Examples

### Parse a package URL

```python
from depvet.purl import parse_package_url

result = parse_package_url("pkg:gem/nokogiri@7.5.1")
print(result.package_details.ecosystem)  # RubyGems
print(result.package_details.name)       # nokogiri
print(result.package_details.version)    # 7.5.1
```

### Manifests, packages and dependency graphs

```python
from depvet.models import PackageManifest, Package, new_package_detail

manifest = PackageManifest.from_local("/project/requirements.txt", "PyPI")
pkg = Package(new_package_detail("PyPI", "requests", "2.31.0"))
manifest.add_package(pkg)
print(pkg.short_name())   # pkg:pypi/requests@2.31.0
```

`PackageManifest.get_packages()` returns the packages of the dependency graph when the graph is marked `present`. Otherwise it returns the flat package list. `Package.dependency_path()` walks from the package through its dependents towards a root package, taking the lowest id first.

### Apply exception rules

```yaml
exceptions:
  - id: "1"
    ecosystem: maven
    name: p1
    version: "*"
    expires: "2030-01-01T00:00:00Z"
```

```python
from depvet import exceptions

loader = exceptions.ExceptionsFileLoader.from_path("exceptions.yml")
exceptions.load(loader)

for pkg in exceptions.allowed_packages(manifest):
    ...  # packages that no active rule exempts
```

An exceptions file may hold only the fields `name`, `description` and `exceptions`. Each exception may hold only `id`, `ecosystem`, `name`, `version` and `expires`. An unknown field raises `ExceptionsFileError`. `expires` must be an RFC 3339 time with a zone.

A rule whose expiry is in the past, or less than five seconds away, is not loaded. A version of `*` matches every version of the package. Ecosystem and name are compared without regard to case. The version must match exactly. `reset_store()` forgets every loaded rule.

### Build a code graph of a Python project

```python
from depvet.code.graph_builder import CodeGraphBuilder, CodeGraphBuilderConfig, GraphStorage
from depvet.code.python_lang import PythonSourceLanguage
from depvet.code.source import FileSystemSourceRepository, FileSystemSourceRepositoryConfig


class InMemoryStorage(GraphStorage):
    def __init__(self):
        self.edges = []

    def link(self, edge):
        self.edges.append(edge)


lang = PythonSourceLanguage()
repo = FileSystemSourceRepository(FileSystemSourceRepositoryConfig(source_paths=["./app"]))
repo.configure_for_language(lang)

storage = InMemoryStorage()
builder = CodeGraphBuilder(CodeGraphBuilderConfig(recursive_import=False), repo, lang, storage)
builder.register_event_handler("progress", lambda event, metrics: print(event.kind, metrics.files_processed))
builder.build()
```

Each edge is a `GraphEdge` between `GraphNode`s. An `imports` edge joins two `package` nodes. A `declares_function` edge joins a `package` node to a `function_decl` node. With `recursive_import=True`, imported modules that resolve to files in the source or import paths are parsed too.

### Logging

Set the `LOG_LEVEL` environment variable to one of `debug`, `info`, `warn`, `error`, `fatal` or `panic`. The default is `warn`. Log output goes to standard output. From code, use these functions in `depvet.log`:

- `set_log_level(verbose, debug)` raises the level.
- `log_to_file(path)` and `migrate_to(stream)` redirect the output.
- `logger_with(key, value)` returns a logger that tags every message with a field.

## What this package does not do

- It has no command-line program. Everything is used as a library.
- It does not read manifests or lockfiles, and it does not fetch package data from any service. You fill `PackageManifest` objects yourself.
- It has no persistent graph store. `CodeGraphBuilder` writes into whatever `GraphStorage` subclass you give it.
- The code graph covers imports and function declarations only. Function calls are extracted by `PythonSourceLanguage.get_function_call_nodes`, but they are not linked into the graph. Python is the only source language provided.

## Running the tests

```
pytest
```