"""
High-level operations behind the CLI commands.

Each operation loads the manifest once, runs any external effects through
the environment, computes a new manifest snapshot and writes it at most once.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .cli_config import get_config
from .dependency import Dependency, dependency_iter
from .environment import InstallOptions, PythonEnvironment
from .exporter import export_dependencies
from .filters import FilterRequest, select_dependencies, selected_group_names
from .groups import build_group_registry
from .reconciler import reconcile_installed, record_tool_dependencies, write_if_changed
from .structured_logging import (
    clear_operation_context,
    log_export_complete,
    set_operation_context,
)
from .workspace import Workspace


@dataclass
class ExportOptions:
    output_file: str
    include: Optional[str] = None
    exclude: Optional[str] = None
    force_required: bool = False


@dataclass
class ExportResult:
    path: Path
    dependencies: List[Dependency]
    groups: List[str]


@dataclass
class UpdateOptions:
    install_options: InstallOptions = field(default_factory=InstallOptions)


@dataclass
class LintOptions:
    """
    Options for linting.

    ``values`` are passed through to the linter, e.g. ``["--fix"]``.
    """

    values: List[str] = field(default_factory=list)
    include_types: bool = False
    install_options: InstallOptions = field(default_factory=InstallOptions)


@dataclass
class LintResult:
    exit_code: int
    manifest_written: bool


def export_dependencies_to_file(workspace: Workspace, options: ExportOptions) -> ExportResult:
    """
    Export the dependencies of the selected groups to a requirements file.

    Raises:
        ProjectDependenciesNotFound, DependencyGroupNotFound,
        DependencyGroupConflict, OutputFilePathDoesNotExist, DepGroupsIOError
    """
    set_operation_context(str(workspace.root), "export")
    try:
        manifest = workspace.current_manifest()
        registry = build_group_registry(manifest)
        request = FilterRequest.from_options(options.include, options.exclude)
        force_required = options.force_required or get_config().export.always_include_required

        dependencies = select_dependencies(request, registry, force_required)
        path = export_dependencies(dependencies, options.output_file, workspace.root)
        groups = selected_group_names(request, registry, force_required)

        log_export_complete(str(path), len(dependencies), groups)
        return ExportResult(path=path, dependencies=dependencies, groups=groups)
    finally:
        clear_operation_context()


def _unique(dependencies: List[Dependency]) -> List[Dependency]:
    seen = set()
    unique = []
    for dep in dependencies:
        if dep not in seen:
            seen.add(dep)
            unique.append(dep)
    return unique


def update_project_dependencies(
    workspace: Workspace,
    environment: PythonEnvironment,
    dependencies: Optional[List[str]] = None,
    options: Optional[UpdateOptions] = None,
) -> bool:
    """
    Upgrade dependencies and pin the manifest to what got installed.

    With ``dependencies`` given, only those already declared in the manifest
    are upgraded (nothing happens if none are). Otherwise every declared
    dependency is upgraded.

    Returns:
        bool: True if the manifest was rewritten
    """
    options = options or UpdateOptions()
    set_operation_context(str(workspace.root), "update")
    try:
        original = workspace.current_manifest()

        if dependencies:
            to_update = [
                dep for dep in dependency_iter(dependencies)
                if original.contains_dependency_any(dep.name)
            ]
            if not to_update:
                return False
        else:
            to_update = _unique(original.all_dependencies())

        if to_update:
            environment.update_packages(to_update, options.install_options)

        updated = reconcile_installed(original, environment.installed_packages())
        return write_if_changed(original, updated, workspace.manifest_path)
    finally:
        clear_operation_context()


def lint_project(
    workspace: Workspace,
    environment: PythonEnvironment,
    options: Optional[LintOptions] = None,
) -> LintResult:
    """
    Run the linter (and optionally the type checker) on the workspace.

    Missing tools are installed first and then recorded in the default
    dependency group if the manifest does not declare them yet.
    """
    options = options or LintOptions()
    config = get_config()
    set_operation_context(str(workspace.root), "lint")
    try:
        original = workspace.current_manifest()

        linter = config.tools.linter
        tools = [linter]
        if not environment.contains_module(linter):
            environment.install_packages([Dependency(linter)], options.install_options)

        exit_codes = []
        if options.include_types:
            type_checker = config.tools.type_checker
            tools.append(type_checker)
            if not environment.contains_module(type_checker):
                environment.install_packages([Dependency(type_checker)], options.install_options)

            exit_codes.append(
                environment.run_module(
                    type_checker, [".", "--exclude", environment.name], cwd=workspace.root
                )
            )

        exit_codes.append(
            environment.run_module(linter, ["check", "."] + list(options.values), cwd=workspace.root)
        )

        updated = record_tool_dependencies(
            original,
            environment.installed_packages(),
            tools,
            group=config.project.default_group,
        )
        written = write_if_changed(original, updated, workspace.manifest_path)

        exit_code = next((code for code in exit_codes if code != 0), 0)
        return LintResult(exit_code=exit_code, manifest_written=written)
    finally:
        clear_operation_context()
