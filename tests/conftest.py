"""
Shared fixtures for dep-groups tests.
"""

from pathlib import Path
from typing import List, Optional

import pytest

from dep_groups.cli_config import reset_config
from dep_groups.dependency import InstalledPackage
from dep_groups.error_handling import setup_error_handling
from dep_groups.environment import python_executable

MOCK_PYPROJECT = """\
[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "mock-project"
version = "0.1.0"
dependencies = ["click>=8.0", "requests[socks]>=2.28"]

[project.optional-dependencies]
dev = ["pytest>=7.0", "black"]
docs = ["sphinx>=5"]
"""


class FakeEnvironment:
    """In-memory stand-in for PythonEnvironment."""

    name = ".venv"

    def __init__(self, installed: Optional[List[InstalledPackage]] = None, exit_code: int = 0):
        self.installed = list(installed or [])
        self.exit_code = exit_code
        self.install_calls = []
        self.update_calls = []
        self.update_options = []
        self.commands = []

    def installed_packages(self):
        return list(self.installed)

    def contains_module(self, name):
        return any(package.name == name for package in self.installed)

    def install_packages(self, dependencies, options=None):
        dependencies = list(dependencies)
        self.install_calls.append(dependencies)
        for dep in dependencies:
            self.installed.append(InstalledPackage(dep.name, "0.1.0"))

    def update_packages(self, dependencies, options=None):
        self.update_calls.append(list(dependencies))
        self.update_options.append(options)

    def run_module(self, module, args=(), cwd=None):
        self.commands.append((module, list(args)))
        return self.exit_code


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep config files and DEP_GROUPS_* variables from leaking into tests."""
    import os

    for key in list(os.environ):
        if key.startswith("DEP_GROUPS_"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("VIRTUAL_ENV", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    reset_config()
    yield
    reset_config()
    setup_error_handling("WARNING")


@pytest.fixture
def temp_dir(tmp_path):
    """Scratch directory separate from the mock project."""
    directory = tmp_path / "scratch"
    directory.mkdir()
    return directory


@pytest.fixture
def mock_project(tmp_path) -> Path:
    """A project root containing the mock pyproject.toml."""
    root = tmp_path / "mock-project"
    root.mkdir()
    (root / "pyproject.toml").write_text(MOCK_PYPROJECT, encoding="utf-8")
    return root


@pytest.fixture
def mock_venv(mock_project) -> Path:
    """A fake .venv with an interpreter file inside the mock project."""
    venv = mock_project / ".venv"
    interpreter = python_executable(venv)
    interpreter.parent.mkdir(parents=True)
    interpreter.write_text("", encoding="utf-8")
    return venv


@pytest.fixture
def installed_packages():
    return [
        InstalledPackage("click", "8.1.7"),
        InstalledPackage("requests", "2.31.0"),
        InstalledPackage("pytest", "7.4.0"),
        InstalledPackage("black", "23.1.0"),
        InstalledPackage("sphinx", "7.0.0"),
        InstalledPackage("urllib3", "2.0.4"),
    ]


@pytest.fixture
def fake_environment(installed_packages):
    return FakeEnvironment(installed_packages)
