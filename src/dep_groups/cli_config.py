"""
Configuration management for dep-groups.

Settings come from dataclass defaults, an optional JSON or YAML config file,
and DEP_GROUPS_* environment variables, in that order.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

console = Console(stderr=True)

REQUIRED_GROUP_NAME = "required"


@dataclass
class ProjectConfig:
    """Manifest discovery and editing."""

    manifest_file_name: str = "pyproject.toml"
    default_group: str = "dev"
    max_manifest_size_mb: int = 5

    @property
    def max_manifest_size_bytes(self) -> int:
        return self.max_manifest_size_mb * 1024 * 1024


@dataclass
class ExportConfig:
    """Requirement file export."""

    always_include_required: bool = False


@dataclass
class EnvironmentConfig:
    """Python environment resolution and installer invocation."""

    venv_dir_names: List[str] = field(default_factory=lambda: [".venv", "venv"])
    installer_module: str = "pip"
    command_timeout_seconds: Optional[int] = None


@dataclass
class ToolsConfig:
    """Linter and type checker modules."""

    linter: str = "ruff"
    type_checker: str = "mypy"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class ComprehensiveConfig:
    """Main configuration containing all subsections."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Global configuration instance
_global_config: Optional[ComprehensiveConfig] = None

# Expected type of every setting; None marks an optional value
_FIELD_TYPES: Dict[str, tuple] = {
    "project.manifest_file_name": (str,),
    "project.default_group": (str,),
    "project.max_manifest_size_mb": (int,),
    "export.always_include_required": (bool,),
    "environment.venv_dir_names": (list,),
    "environment.installer_module": (str,),
    "environment.command_timeout_seconds": (int, type(None)),
    "tools.linter": (str,),
    "tools.type_checker": (str,),
    "logging.log_level": (str,),
    "logging.enable_json": (bool,),
}

_TYPE_NAMES = {list: "list of str", type(None): "null"}


def _validate_config_types(config: ComprehensiveConfig) -> List[str]:
    """Report settings whose value has the wrong type, e.g. from a YAML file."""
    errors = []
    for dotted_name, expected in _FIELD_TYPES.items():
        section_name, key = dotted_name.split(".")
        value = getattr(getattr(config, section_name), key)
        # bool is an int subclass but never a valid count
        if isinstance(value, bool) and bool not in expected:
            valid = False
        else:
            valid = isinstance(value, expected)
        if valid and isinstance(value, list):
            valid = all(isinstance(item, str) for item in value)

        if not valid:
            type_names = " or ".join(_TYPE_NAMES.get(t, t.__name__) for t in expected)
            errors.append(f"{dotted_name} must be {type_names}, got {type(value).__name__}")
    return errors


def validate_config_values(config: ComprehensiveConfig) -> List[str]:
    """
    Validate configuration values and return any errors.

    Args:
        config: Configuration to validate

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = _validate_config_types(config)
    if errors:
        return errors

    if not config.project.manifest_file_name:
        errors.append("project.manifest_file_name must not be empty")
    if not config.project.default_group:
        errors.append("project.default_group must not be empty")
    elif config.project.default_group == REQUIRED_GROUP_NAME:
        errors.append(f"project.default_group cannot be '{REQUIRED_GROUP_NAME}'")
    if config.project.max_manifest_size_mb <= 0:
        errors.append("project.max_manifest_size_mb must be positive")

    if not config.environment.venv_dir_names:
        errors.append("environment.venv_dir_names must not be empty")
    if not config.environment.installer_module:
        errors.append("environment.installer_module must not be empty")
    timeout = config.environment.command_timeout_seconds
    if timeout is not None and timeout <= 0:
        errors.append("environment.command_timeout_seconds must be positive")

    if not config.tools.linter:
        errors.append("tools.linter must not be empty")
    if not config.tools.type_checker:
        errors.append("tools.type_checker must not be empty")

    if config.logging.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        errors.append(f"logging.log_level is not a valid level: {config.logging.log_level}")

    return errors


def load_config_file(config_path: Path) -> Optional[Dict[str, Any]]:
    """Load config from file."""
    if not config_path.exists():
        return None

    try:
        with open(config_path, encoding="utf-8") as f:
            if config_path.suffix.lower() in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            elif config_path.suffix.lower() == ".json":
                return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"⚠️  Error loading config from {config_path}: {e}", style="yellow")

    return None


def find_config_file() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / ".dep-groups.json",
        Path.cwd() / ".dep-groups.yaml",
        Path.cwd() / ".dep-groups.yml",
        Path.home() / ".config" / "dep-groups" / "config.json",
        Path.home() / ".config" / "dep-groups" / "config.yaml",
    ]

    for location in locations:
        if location.exists():
            return location

    return None


def load_environment_overrides(config: ComprehensiveConfig) -> None:
    """Apply DEP_GROUPS_* environment variable overrides."""

    def get_env_bool(key: str, default: bool = False) -> bool:
        value = os.environ.get(key, "").lower()
        return value in ["true", "1", "yes", "on"] if value else default

    def get_env_int(key: str, default: Optional[int] = None) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else default
        except ValueError:
            console.print(f"⚠️  Invalid integer value for {key}, using default", style="yellow")
            return default

    if manifest_name := os.environ.get("DEP_GROUPS_MANIFEST"):
        config.project.manifest_file_name = manifest_name
    if default_group := os.environ.get("DEP_GROUPS_DEFAULT_GROUP"):
        config.project.default_group = default_group

    config.export.always_include_required = get_env_bool(
        "DEP_GROUPS_ALWAYS_INCLUDE_REQUIRED", config.export.always_include_required
    )

    if venv_dirs := os.environ.get("DEP_GROUPS_VENV_DIRS"):
        config.environment.venv_dir_names = [d.strip() for d in venv_dirs.split(",") if d.strip()]
    if timeout := get_env_int("DEP_GROUPS_COMMAND_TIMEOUT"):
        config.environment.command_timeout_seconds = timeout

    if linter := os.environ.get("DEP_GROUPS_LINTER"):
        config.tools.linter = linter
    if type_checker := os.environ.get("DEP_GROUPS_TYPE_CHECKER"):
        config.tools.type_checker = type_checker

    if log_level := os.environ.get("DEP_GROUPS_LOG_LEVEL"):
        config.logging.log_level = log_level.upper()
    config.logging.enable_json = get_env_bool("DEP_GROUPS_LOG_JSON", config.logging.enable_json)


def apply_config_section(config: Any, section_data: Dict[str, Any], section_name: str) -> None:
    """Apply configuration from dictionary to config section."""
    for key, value in section_data.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            console.print(f"⚠️  Unknown config key in {section_name}: {key}", style="yellow")


def load_config() -> ComprehensiveConfig:
    """Load configuration from file and environment."""
    global _global_config

    if _global_config is not None:
        return _global_config

    config = ComprehensiveConfig()

    config_file = find_config_file()
    if config_file:
        file_config = load_config_file(config_file)
        if isinstance(file_config, dict):
            for section_name in ("project", "export", "environment", "tools", "logging"):
                if isinstance(file_config.get(section_name), dict):
                    apply_config_section(
                        getattr(config, section_name), file_config[section_name], section_name
                    )

    load_environment_overrides(config)

    # Type errors hide value errors, so validate again after each reset
    reported: List[str] = []
    validation_errors = validate_config_values(config)
    while validation_errors:
        reported.extend(validation_errors)
        config = _replace_invalid_sections(config, validation_errors)
        validation_errors = validate_config_values(config)

    if reported:
        console.print("⚠️  Configuration validation errors:", style="red")
        for error in reported:
            console.print(f"  • {error}", style="red")
        console.print("Using default values for invalid settings.", style="yellow")

    _global_config = config
    return config


def _replace_invalid_sections(config: ComprehensiveConfig, errors: List[str]) -> ComprehensiveConfig:
    """Reset every section that produced a validation error to its defaults."""
    defaults = ComprehensiveConfig()
    for section_name in {error.split(".", 1)[0] for error in errors}:
        if hasattr(defaults, section_name):
            setattr(config, section_name, getattr(defaults, section_name))
    return config


def get_config() -> ComprehensiveConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = load_config()
    return _global_config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _global_config
    _global_config = None


def create_sample_config() -> str:
    """Generate a sample configuration file with every default."""
    return json.dumps(ComprehensiveConfig().to_dict(), indent=2)
