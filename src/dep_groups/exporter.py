"""
Export of a filtered dependency list to a requirements-style text file.
"""

from pathlib import Path
from typing import Iterable, List, Union

from .dependency import Dependency
from .exceptions import DepGroupsIOError, OutputFilePathDoesNotExist


def resolve_output_path(output_path: Union[str, Path], workspace_root: Union[str, Path]) -> Path:
    """Absolute paths are used as given; relative ones are joined under the workspace root."""
    path = Path(output_path)
    if path.is_absolute():
        return path
    return Path(workspace_root) / path


def format_export_lines(dependencies: Iterable[Dependency]) -> List[str]:
    return [dep.export_line() for dep in dependencies]


def export_dependencies(
    dependencies: Iterable[Dependency],
    output_path: Union[str, Path],
    workspace_root: Union[str, Path],
) -> Path:
    """
    Write one line per dependency, in the order given.

    Args:
        dependencies: Dependencies to write
        output_path: Absolute path, or a path relative to ``workspace_root``
        workspace_root: Root directory of the project

    Returns:
        Path: The file that was written

    Raises:
        OutputFilePathDoesNotExist: If the destination directory is missing;
            nothing is created in that case
        DepGroupsIOError: If the file cannot be written
    """
    path = resolve_output_path(output_path, workspace_root)
    if not path.parent.is_dir():
        raise OutputFilePathDoesNotExist(path.parent)

    content = "".join(f"{line}\n" for line in format_export_lines(dependencies))
    try:
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
    except OSError as e:
        raise DepGroupsIOError(f"Error writing {path}: {e}", path) from e

    return path
