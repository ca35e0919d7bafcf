"""
Exception hierarchy for dep-groups.

Every error raised by the core derives from DepGroupsError so callers
(the CLI in particular) can surface them uniformly.
"""

from pathlib import Path
from typing import Iterable, Union


class DepGroupsError(Exception):
    """Base class for all dep-groups errors."""


class ProjectDependenciesNotFound(DepGroupsError):
    """The manifest declares neither required nor optional dependencies."""

    def __init__(self, manifest_path: Union[str, Path, None] = None):
        self.manifest_path = manifest_path
        message = "Project dependencies not found"
        if manifest_path is not None:
            message += f" in {manifest_path}"
        super().__init__(message)


class DependencyGroupNotFound(DepGroupsError):
    """An include/exclude filter names a group the manifest does not declare."""

    def __init__(self, group: str):
        self.group = group
        super().__init__(f"Dependency group not found: {group}")


class DependencyGroupConflict(DepGroupsError):
    """One or more groups were both included and excluded."""

    def __init__(self, groups: Iterable[str]):
        self.groups = list(groups)
        super().__init__(
            "Dependency groups are both included and excluded: "
            + ", ".join(self.groups)
        )


class OutputFilePathDoesNotExist(DepGroupsError):
    """The directory an export should be written into is missing."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        super().__init__(f"Output file directory does not exist: {self.path}")


class DepGroupsIOError(DepGroupsError):
    """Wraps an underlying OSError raised while reading or writing files."""

    def __init__(self, message: str, path: Union[str, Path, None] = None):
        self.path = str(path) if path is not None else None
        super().__init__(message)


class ManifestNotFoundError(DepGroupsError):
    """The manifest file is missing or is not a usable file."""


class ManifestParseError(DepGroupsError):
    """The manifest file could not be decoded."""


class ReservedDependencyGroupError(DepGroupsError):
    """An optional group uses the reserved name of the required group."""

    def __init__(self, group: str):
        self.group = group
        super().__init__(
            f"'{group}' is reserved for required dependencies and cannot be "
            "used as an optional dependency group"
        )


class InvalidDependencyError(DepGroupsError):
    """A dependency string is not a valid PEP 508 requirement."""


class WorkspaceNotFoundError(DepGroupsError):
    """No project manifest was found in the directory or its parents."""


class PythonEnvironmentNotFound(DepGroupsError):
    """No Python environment could be resolved for the workspace."""


class EnvironmentCommandError(DepGroupsError):
    """An installer command run inside the environment failed."""

    def __init__(self, command: Iterable[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed with exit status {returncode}: {' '.join(self.command)}"
        if stderr:
            message += f"\n{stderr.strip()}"
        super().__init__(message)
