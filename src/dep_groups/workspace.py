"""
Workspace discovery: the project root and its Python environment.
"""

import os
from pathlib import Path
from typing import Optional, Union

from .cli_config import get_config
from .environment import PythonEnvironment, python_executable
from .exceptions import PythonEnvironmentNotFound, WorkspaceNotFoundError
from .manifest import Manifest, load_manifest


class Workspace:
    """A project directory containing a manifest."""

    def __init__(self, root: Union[str, Path], manifest_file_name: Optional[str] = None):
        self.root = Path(root).resolve()
        self.manifest_file_name = manifest_file_name or get_config().project.manifest_file_name

    @classmethod
    def discover(cls, cwd: Union[str, Path, None] = None) -> "Workspace":
        """
        Find the nearest directory at or above ``cwd`` containing the manifest.

        Raises:
            WorkspaceNotFoundError: If no manifest is found up to the filesystem root
        """
        manifest_name = get_config().project.manifest_file_name
        start = Path(cwd or Path.cwd()).resolve()
        for directory in [start, *start.parents]:
            if (directory / manifest_name).is_file():
                return cls(directory, manifest_name)
        raise WorkspaceNotFoundError(f"No {manifest_name} found in {start} or its parents")

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest_file_name

    def current_manifest(self) -> Manifest:
        return load_manifest(self.manifest_path)

    def resolve_python_environment(self) -> PythonEnvironment:
        """
        Resolve the environment to operate on.

        An activated environment (``VIRTUAL_ENV``) wins over environment
        directories found under the workspace root.

        Raises:
            PythonEnvironmentNotFound: If no usable environment exists
        """
        active = os.environ.get("VIRTUAL_ENV")
        if active and python_executable(Path(active)).exists():
            return PythonEnvironment(active)

        for dir_name in get_config().environment.venv_dir_names:
            candidate = self.root / dir_name
            if python_executable(candidate).exists():
                return PythonEnvironment(candidate)

        raise PythonEnvironmentNotFound(
            f"No Python environment found for {self.root}; create one with "
            "'python -m venv .venv'"
        )
