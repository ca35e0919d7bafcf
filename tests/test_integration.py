"""
Integration tests for dep-groups.
Tests complete operations against a temporary project and a fake environment.
"""

import json
import subprocess
from unittest.mock import patch

import pytest

from conftest import FakeEnvironment
from dep_groups.dependency import Dependency, InstalledPackage
from dep_groups.environment import InstallOptions, PythonEnvironment, python_executable
from dep_groups.exceptions import (
    DependencyGroupConflict,
    DependencyGroupNotFound,
    EnvironmentCommandError,
    OutputFilePathDoesNotExist,
    PythonEnvironmentNotFound,
    WorkspaceNotFoundError,
)
from dep_groups.operations import (
    ExportOptions,
    LintOptions,
    UpdateOptions,
    export_dependencies_to_file,
    lint_project,
    update_project_dependencies,
)
from dep_groups.workspace import Workspace


class TestExportOperation:
    """Test exporting groups from a real manifest file."""

    def test_export_all_groups(self, mock_project):
        workspace = Workspace(mock_project)

        result = export_dependencies_to_file(workspace, ExportOptions(output_file="requirements.txt"))

        lines = (mock_project / "requirements.txt").read_text(encoding="utf-8").splitlines()
        assert lines == [
            "click >=8.0",
            "requests [socks]>=2.28",
            "pytest >=7.0",
            "black",
            "sphinx >=5",
        ]
        assert result.groups == ["required", "dev", "docs"]
        assert len(result.dependencies) == 5

    def test_export_included_group_only(self, mock_project):
        workspace = Workspace(mock_project)

        export_dependencies_to_file(workspace, ExportOptions(output_file="dev.txt", include="dev"))

        assert (mock_project / "dev.txt").read_text(encoding="utf-8") == "pytest >=7.0\nblack\n"

    def test_export_force_required_from_config(self, mock_project, monkeypatch):
        monkeypatch.setenv("DEP_GROUPS_ALWAYS_INCLUDE_REQUIRED", "true")
        workspace = Workspace(mock_project)

        result = export_dependencies_to_file(workspace, ExportOptions(output_file="docs.txt", include="docs"))

        assert [dep.name for dep in result.dependencies] == ["click", "requests", "sphinx"]

    def test_export_conflict_writes_nothing(self, mock_project):
        workspace = Workspace(mock_project)
        options = ExportOptions(output_file="requirements.txt", include="dev", exclude="dev")

        with pytest.raises(DependencyGroupConflict):
            export_dependencies_to_file(workspace, options)

        assert not (mock_project / "requirements.txt").exists()

    def test_export_unknown_group(self, mock_project):
        workspace = Workspace(mock_project)

        with pytest.raises(DependencyGroupNotFound):
            export_dependencies_to_file(workspace, ExportOptions(output_file="r.txt", include="lint"))

    def test_export_missing_directory(self, mock_project):
        workspace = Workspace(mock_project)

        with pytest.raises(OutputFilePathDoesNotExist):
            export_dependencies_to_file(workspace, ExportOptions(output_file="build/requirements.txt"))

        assert not (mock_project / "build").exists()

    def test_export_always_writes_utf8(self, mock_project, monkeypatch):
        monkeypatch.chdir(mock_project)
        (mock_project / ".dep-groups.json").write_text(
            json.dumps({"export": {"encoding": "bogus"}}), encoding="utf-8"
        )
        target = mock_project / "requirements.txt"
        target.write_text("old\n", encoding="utf-8")
        workspace = Workspace(mock_project)

        export_dependencies_to_file(workspace, ExportOptions(output_file="requirements.txt", include="docs"))

        assert target.read_bytes() == b"sphinx >=5\n"

    def test_export_absolute_path(self, mock_project, temp_dir):
        workspace = Workspace(mock_project)
        target = temp_dir / "out.txt"

        result = export_dependencies_to_file(workspace, ExportOptions(output_file=str(target), include="docs"))

        assert result.path == target
        assert target.read_text(encoding="utf-8") == "sphinx >=5\n"


class TestUpdateOperation:
    """Test updating and reconciling the manifest."""

    def test_update_all_pins_manifest(self, mock_project, fake_environment):
        workspace = Workspace(mock_project)

        written = update_project_dependencies(workspace, fake_environment)

        assert written is True
        assert [dep.name for dep in fake_environment.update_calls[0]] == [
            "click",
            "requests",
            "pytest",
            "black",
            "sphinx",
        ]
        manifest = workspace.current_manifest()
        assert [str(dep) for dep in manifest.required] == ["click==8.1.7", "requests[socks]==2.31.0"]
        assert [str(dep) for dep in manifest.optional_group("dev")] == ["pytest==7.4.0", "black==23.1.0"]
        assert not manifest.contains_dependency_any("urllib3")

    def test_second_update_does_not_write(self, mock_project, fake_environment):
        workspace = Workspace(mock_project)
        update_project_dependencies(workspace, fake_environment)
        content = workspace.manifest_path.read_text(encoding="utf-8")

        with patch("dep_groups.reconciler.write_manifest") as mock_write:
            written = update_project_dependencies(workspace, fake_environment)

        assert written is False
        mock_write.assert_not_called()
        assert workspace.manifest_path.read_text(encoding="utf-8") == content

    def test_update_named_dependencies(self, mock_project, fake_environment):
        workspace = Workspace(mock_project)
        options = UpdateOptions(install_options=InstallOptions(values=["--no-cache-dir"]))

        update_project_dependencies(workspace, fake_environment, ["click", "not-declared"], options)

        assert fake_environment.update_calls == [[Dependency("click")]]

    def test_update_undeclared_dependencies_is_a_noop(self, mock_project, fake_environment):
        workspace = Workspace(mock_project)
        before = workspace.manifest_path.read_text(encoding="utf-8")

        written = update_project_dependencies(workspace, fake_environment, ["numpy"])

        assert written is False
        assert fake_environment.update_calls == []
        assert workspace.manifest_path.read_text(encoding="utf-8") == before


class TestLintOperation:
    """Test linting and recording lint tools."""

    def test_lint_installs_and_records_linter(self, mock_project, fake_environment):
        workspace = Workspace(mock_project)

        result = lint_project(workspace, fake_environment)

        assert result.exit_code == 0
        assert result.manifest_written is True
        assert fake_environment.install_calls == [[Dependency("ruff")]]
        assert fake_environment.commands == [("ruff", ["check", "."])]
        dev = workspace.current_manifest().optional_group("dev")
        assert [str(dep) for dep in dev] == ["pytest>=7.0", "black", "ruff==0.1.0"]

    def test_lint_twice_writes_once(self, mock_project, fake_environment):
        workspace = Workspace(mock_project)
        lint_project(workspace, fake_environment)

        result = lint_project(workspace, fake_environment)

        assert result.manifest_written is False
        assert len(fake_environment.install_calls) == 1

    def test_lint_with_types(self, mock_project, fake_environment):
        workspace = Workspace(mock_project)

        lint_project(workspace, fake_environment, LintOptions(values=["--fix"], include_types=True))

        assert fake_environment.commands == [
            ("mypy", [".", "--exclude", ".venv"]),
            ("ruff", ["check", ".", "--fix"]),
        ]
        dev = workspace.current_manifest().optional_group("dev")
        assert [dep.name for dep in dev][-2:] == ["ruff", "mypy"]

    def test_lint_uses_configured_default_group(self, mock_project, fake_environment, monkeypatch):
        monkeypatch.setenv("DEP_GROUPS_DEFAULT_GROUP", "lint")
        workspace = Workspace(mock_project)

        lint_project(workspace, fake_environment)

        manifest = workspace.current_manifest()
        assert manifest.group_names == ["dev", "docs", "lint"]
        assert manifest.optional_group("lint") == (Dependency("ruff", "==0.1.0"),)

    def test_lint_failure_exit_code(self, mock_project, installed_packages):
        environment = FakeEnvironment(installed_packages + [InstalledPackage("ruff", "0.1.6")], exit_code=1)
        workspace = Workspace(mock_project)

        result = lint_project(workspace, environment)

        assert result.exit_code == 1
        assert environment.install_calls == []


class TestWorkspace:
    """Test workspace and environment discovery."""

    def test_discover_from_subdirectory(self, mock_project):
        nested = mock_project / "src" / "mock_project"
        nested.mkdir(parents=True)

        assert Workspace.discover(nested).root == mock_project.resolve()

    def test_discover_without_manifest(self, temp_dir):
        with pytest.raises(WorkspaceNotFoundError):
            Workspace.discover(temp_dir)

    def test_resolve_project_venv(self, mock_project, mock_venv):
        environment = Workspace(mock_project).resolve_python_environment()

        assert environment.root == mock_venv.resolve()
        assert environment.name == ".venv"

    def test_active_virtual_env_wins(self, mock_project, mock_venv, monkeypatch, tmp_path):
        active = tmp_path / "active-env"
        python_executable(active).parent.mkdir(parents=True)
        python_executable(active).write_text("", encoding="utf-8")
        monkeypatch.setenv("VIRTUAL_ENV", str(active))

        environment = Workspace(mock_project).resolve_python_environment()

        assert environment.root == active

    def test_no_environment(self, mock_project):
        with pytest.raises(PythonEnvironmentNotFound):
            Workspace(mock_project).resolve_python_environment()


class TestPythonEnvironment:
    """Test the subprocess-backed environment."""

    def _completed(self, args, returncode=0, stdout="", stderr=""):
        return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)

    def test_installed_packages(self, mock_venv):
        listing = json.dumps([{"name": "Click", "version": "8.1.7"}, {"name": "rich", "version": "13.7.0"}])
        environment = PythonEnvironment(mock_venv)

        with patch("dep_groups.environment.subprocess.run", return_value=self._completed([], stdout=listing)) as mock_run:
            packages = environment.installed_packages()

        assert packages == [InstalledPackage("Click", "8.1.7"), InstalledPackage("rich", "13.7.0")]
        command = mock_run.call_args[0][0]
        assert command[1:] == ["-m", "pip", "list", "--format=json"]

    def test_contains_module(self, mock_venv):
        listing = json.dumps([{"name": "Typing_Extensions", "version": "4.8.0"}])
        environment = PythonEnvironment(mock_venv)

        with patch("dep_groups.environment.subprocess.run", return_value=self._completed([], stdout=listing)):
            assert environment.contains_module("typing-extensions")
            assert not environment.contains_module("ruff")

    def test_update_packages_command(self, mock_venv):
        environment = PythonEnvironment(mock_venv)

        with patch("dep_groups.environment.subprocess.run", return_value=self._completed([])) as mock_run:
            environment.update_packages(
                [Dependency.from_string("click>=8")], InstallOptions(values=["--quiet"])
            )

        command = mock_run.call_args[0][0]
        assert command[1:] == ["-m", "pip", "install", "--upgrade", "click>=8", "--quiet"]

    def test_install_failure(self, mock_venv):
        environment = PythonEnvironment(mock_venv)
        failed = self._completed(["python", "-m", "pip", "install", "nope"], returncode=1, stderr="no such package")

        with patch("dep_groups.environment.subprocess.run", return_value=failed):
            with pytest.raises(EnvironmentCommandError) as exc_info:
                environment.install_packages([Dependency("nope")])

        assert exc_info.value.returncode == 1
        assert "no such package" in str(exc_info.value)

    def test_run_module_returns_exit_status(self, mock_venv, mock_project):
        environment = PythonEnvironment(mock_venv)

        with patch("dep_groups.environment.subprocess.run", return_value=self._completed([], returncode=3)) as mock_run:
            status = environment.run_module("ruff", ["check", "."], cwd=mock_project)

        assert status == 3
        assert mock_run.call_args[1]["cwd"] == mock_project
        assert mock_run.call_args[1]["capture_output"] is False

    def test_missing_interpreter(self, temp_dir):
        with pytest.raises(PythonEnvironmentNotFound):
            PythonEnvironment(temp_dir / "no-venv")
