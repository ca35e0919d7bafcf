"""
Reading and writing the project manifest (``pyproject.toml``).

A Manifest is an immutable snapshot of the dependency tables; every edit
produces a new snapshot, and the file is only written back explicitly.
"""

import copy
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import toml

from .cli_config import REQUIRED_GROUP_NAME, get_config
from .dependency import Dependency
from .error_handling import log_manifest_error
from .exceptions import (
    DepGroupsIOError,
    InvalidDependencyError,
    ManifestNotFoundError,
    ManifestParseError,
    ReservedDependencyGroupError,
)
from .structured_logging import log_manifest_loaded

GroupTable = Tuple[Tuple[str, Tuple[Dependency, ...]], ...]


@dataclass(frozen=True)
class Manifest:
    """
    Dependency tables of a project manifest.

    ``required`` and ``optional`` are None when the manifest does not declare
    the structure at all, and empty when it is declared but empty. Equality
    only considers the dependency tables.
    """

    required: Optional[Tuple[Dependency, ...]] = None
    optional: Optional[GroupTable] = None
    path: Optional[Path] = field(default=None, compare=False)
    document: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def has_dependency_tables(self) -> bool:
        return self.required is not None or self.optional is not None

    @property
    def group_names(self) -> List[str]:
        return [name for name, _ in self.optional or ()]

    def optional_group(self, group: str) -> Optional[Tuple[Dependency, ...]]:
        for name, deps in self.optional or ():
            if name == group:
                return deps
        return None

    def contains_dependency(self, name: str) -> bool:
        """Check the required list for ``name``."""
        return any(dep.matches(name) for dep in self.required or ())

    def contains_optional_dependency(self, name: str, group: str) -> bool:
        return any(dep.matches(name) for dep in self.optional_group(group) or ())

    def contains_dependency_any(self, name: str) -> bool:
        """Check the required list and every optional group for ``name``."""
        if self.contains_dependency(name):
            return True
        return any(self.contains_optional_dependency(name, group) for group in self.group_names)

    def all_dependencies(self) -> List[Dependency]:
        """Every declared dependency, required first, in declaration order."""
        deps = list(self.required or ())
        for _, group_deps in self.optional or ():
            deps.extend(group_deps)
        return deps

    def with_required(self, dependencies: Iterable[Dependency]) -> "Manifest":
        return replace(self, required=tuple(dependencies))

    def with_optional(self, groups: Iterable[Tuple[str, Iterable[Dependency]]]) -> "Manifest":
        return replace(self, optional=tuple((name, tuple(deps)) for name, deps in groups))

    def with_group(self, group: str, dependencies: Iterable[Dependency]) -> "Manifest":
        """Replace ``group`` in place, or append it when it does not exist yet."""
        if group == REQUIRED_GROUP_NAME:
            raise ReservedDependencyGroupError(group)

        new_deps = tuple(dependencies)
        groups = list(self.optional or ())
        for index, (name, _) in enumerate(groups):
            if name == group:
                groups[index] = (name, new_deps)
                break
        else:
            groups.append((group, new_deps))
        return replace(self, optional=tuple(groups))

    def to_document(self) -> Dict[str, Any]:
        """Merge the dependency tables back into a copy of the raw document."""
        document = copy.deepcopy(self.document)
        if not self.has_dependency_tables:
            return document

        project = document.setdefault("project", {})
        if self.required is not None:
            project["dependencies"] = [str(dep) for dep in self.required]
        if self.optional is not None:
            project["optional-dependencies"] = {
                name: [str(dep) for dep in deps] for name, deps in self.optional
            }
        return document


def _validate_manifest_path(file_path: Union[str, Path]) -> Path:
    """
    Validate the manifest path before reading it.

    Raises:
        ManifestNotFoundError: If the path is missing, not a file, not TOML or too large
    """
    try:
        path = Path(file_path).resolve()
    except (OSError, ValueError) as e:
        raise ManifestNotFoundError(f"Invalid manifest path: {e}") from e

    if not path.exists():
        raise ManifestNotFoundError(f"Manifest does not exist: {path}")
    if not path.is_file():
        raise ManifestNotFoundError(f"Manifest path is not a file: {path}")
    if path.suffix.lower() != ".toml":
        raise ManifestNotFoundError(f"Manifest must be a .toml file: {path.name}")

    max_size = get_config().project.max_manifest_size_bytes
    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise DepGroupsIOError(f"Cannot access manifest: {e}", path) from e
    if file_size > max_size:
        raise ManifestNotFoundError(f"Manifest too large: {file_size} bytes (max: {max_size})")

    return path


def _read_manifest_text(path: Path) -> str:
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise ManifestParseError(f"Manifest contains invalid UTF-8: {path.name}") from e
    except OSError as e:
        raise DepGroupsIOError(f"Error reading manifest: {e}", path) from e


def _parse_dependency_list(value: Any, location: str) -> Tuple[Dependency, ...]:
    if not isinstance(value, list):
        raise ManifestParseError(f"{location} must be an array of strings")

    deps = []
    for item in value:
        if not isinstance(item, str):
            raise ManifestParseError(f"{location} must be an array of strings")
        deps.append(Dependency.from_string(item))
    return tuple(deps)


def parse_manifest(data: Dict[str, Any], path: Optional[Path] = None) -> Manifest:
    """
    Build a Manifest from a decoded pyproject document.

    Raises:
        ManifestParseError: If the dependency tables have the wrong shape
        ReservedDependencyGroupError: If an optional group is named ``required``
        InvalidDependencyError: If a dependency string is not PEP 508
    """
    project = data.get("project")
    if not isinstance(project, dict):
        return Manifest(path=path, document=data)

    required = None
    if "dependencies" in project:
        required = _parse_dependency_list(project["dependencies"], "project.dependencies")

    optional = None
    if "optional-dependencies" in project:
        table = project["optional-dependencies"]
        if not isinstance(table, dict):
            raise ManifestParseError("project.optional-dependencies must be a table")

        groups = []
        for group, reqs in table.items():
            if group == REQUIRED_GROUP_NAME:
                raise ReservedDependencyGroupError(group)
            groups.append(
                (group, _parse_dependency_list(reqs, f"project.optional-dependencies.{group}"))
            )
        optional = tuple(groups)

    return Manifest(required=required, optional=optional, path=path, document=data)


def load_manifest(file_path: Union[str, Path]) -> Manifest:
    """
    Load and parse a pyproject.toml manifest.

    Args:
        file_path: Path to the manifest

    Returns:
        Manifest: Snapshot of the manifest's dependency tables

    Raises:
        ManifestNotFoundError: If the file cannot be used
        ManifestParseError: If the file is not valid TOML or is malformed
    """
    path = _validate_manifest_path(file_path)
    content = _read_manifest_text(path)

    try:
        data = toml.loads(content)
    except toml.TomlDecodeError as e:
        log_manifest_error(
            f"Invalid TOML format in manifest: {e}",
            "manifest",
            "load_manifest",
            file_path=str(path),
            exception=e,
        )
        raise ManifestParseError(f"Invalid TOML format in {path.name}: {e}") from e

    try:
        manifest = parse_manifest(data, path)
    except (ManifestParseError, InvalidDependencyError, ReservedDependencyGroupError) as e:
        log_manifest_error(
            f"Malformed dependency tables: {e}",
            "manifest",
            "load_manifest",
            file_path=str(path),
            exception=e,
        )
        raise

    log_manifest_loaded(str(path), len(manifest.required or ()), manifest.group_names)
    return manifest


def write_manifest(manifest: Manifest, file_path: Union[str, Path, None] = None) -> Path:
    """
    Persist the manifest, merging its dependency tables into the raw document.

    Raises:
        DepGroupsIOError: If the file cannot be written
    """
    target = file_path if file_path is not None else manifest.path
    if target is None:
        raise DepGroupsIOError("Manifest has no file path to write to")

    path = Path(target)
    content = toml.dumps(manifest.to_document())
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        log_manifest_error(
            f"Error writing manifest: {e}",
            "manifest",
            "write_manifest",
            file_path=str(path),
            exception=e,
        )
        raise DepGroupsIOError(f"Error writing manifest: {e}", path) from e

    return path
