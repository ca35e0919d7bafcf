"""
The project's Python environment: installed-package queries, installation
and running tool modules such as linters.

Every call blocks until the child process exits.
"""

import json
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from packaging.utils import canonicalize_name

from .cli_config import get_config
from .dependency import Dependency, InstalledPackage
from .error_handling import log_environment_error
from .exceptions import EnvironmentCommandError, PythonEnvironmentNotFound
from .structured_logging import get_environment_logger, log_tool_command


@dataclass
class InstallOptions:
    """Extra arguments passed through to the installer."""

    values: List[str] = field(default_factory=list)


def python_executable(env_root: Path) -> Path:
    """Location of the interpreter inside a virtual environment directory."""
    if sys.platform == "win32":
        return env_root / "Scripts" / "python.exe"
    return env_root / "bin" / "python"


class PythonEnvironment:
    """A virtual environment addressed through its interpreter."""

    def __init__(self, root: Union[str, Path], timeout_seconds: Optional[int] = None):
        self.root = Path(root)
        self.python_path = python_executable(self.root)
        if not self.python_path.exists():
            raise PythonEnvironmentNotFound(f"No Python interpreter found in {self.root}")

        config = get_config()
        self.installer_module = config.environment.installer_module
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else config.environment.command_timeout_seconds
        )
        self.logger = get_environment_logger()

    @property
    def name(self) -> str:
        return self.root.name

    def _run(
        self, args: Sequence[str], cwd: Optional[Path] = None, capture_output: bool = True
    ) -> subprocess.CompletedProcess:
        command = [str(self.python_path)] + [str(arg) for arg in args]
        self.logger.debug("command_started", command=command)
        try:
            return subprocess.run(
                command,
                cwd=cwd,
                capture_output=capture_output,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            log_environment_error(
                f"Command timed out after {self.timeout_seconds}s",
                "environment",
                "_run",
                command=command,
                exception=e,
            )
            raise EnvironmentCommandError(command, -1, "timed out") from e
        except OSError as e:
            log_environment_error(
                f"Command could not be started: {e}",
                "environment",
                "_run",
                command=command,
                exception=e,
            )
            raise EnvironmentCommandError(command, -1, str(e)) from e

    def _run_installer(self, args: Sequence[str]) -> None:
        result = self._run(["-m", self.installer_module] + list(args))
        if result.returncode != 0:
            log_environment_error(
                "Installer command failed",
                "environment",
                "_run_installer",
                command=list(result.args),
                returncode=result.returncode,
            )
            raise EnvironmentCommandError(result.args, result.returncode, result.stderr or "")

    def installed_packages(self) -> List[InstalledPackage]:
        """Packages currently installed, in the installer's listing order."""
        result = self._run(["-m", self.installer_module, "list", "--format=json"])
        if result.returncode != 0:
            raise EnvironmentCommandError(result.args, result.returncode, result.stderr or "")

        try:
            entries = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as e:
            raise EnvironmentCommandError(result.args, result.returncode, f"Unreadable package list: {e}") from e

        return [InstalledPackage(name=entry["name"], version=entry["version"]) for entry in entries]

    def contains_module(self, name: str) -> bool:
        key = canonicalize_name(name)
        return any(package.key == key for package in self.installed_packages())

    def install_packages(self, dependencies: Iterable[Dependency], options: Optional[InstallOptions] = None) -> None:
        args = ["install"] + [str(dep) for dep in dependencies]
        if options is not None:
            args.extend(options.values)
        self._run_installer(args)

    def update_packages(self, dependencies: Iterable[Dependency], options: Optional[InstallOptions] = None) -> None:
        args = ["install", "--upgrade"] + [str(dep) for dep in dependencies]
        if options is not None:
            args.extend(options.values)
        self._run_installer(args)

    def run_module(self, module: str, args: Sequence[str] = (), cwd: Optional[Path] = None) -> int:
        """Run ``python -m module args`` with output going to the terminal."""
        tool_args = [str(arg) for arg in args]
        result = self._run(["-m", module] + tool_args, cwd=cwd, capture_output=False)
        log_tool_command(module, tool_args, result.returncode)
        return result.returncode
