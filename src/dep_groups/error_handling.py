"""
Error reporting for dep-groups.

Failures in manifest parsing and environment commands are logged here with
a structured context before the caller raises them.
"""

import logging
import re
import sys
import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

ERROR_LOGGER_NAME = "dep_groups"


class ErrorLevel(Enum):
    """Error severity levels."""

    WARNING = "WARNING"
    ERROR = "ERROR"


class ErrorCategory(Enum):
    MANIFEST = "MANIFEST"
    ENVIRONMENT = "ENVIRONMENT"


@dataclass
class ErrorContext:
    """Structured error context information."""

    level: ErrorLevel
    category: ErrorCategory
    message: str
    module: str
    function: str
    details: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None
    traceback_info: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)


class SecureLogger:
    """Logger that masks credentials embedded in index URLs and tool arguments."""

    _SENSITIVE_PATTERNS = [
        (r"(https?://[^@\s:/]+:)[^@\s]+@", r"\1[REDACTED]@"),
        (r'token["\s]*[:=]["\s]*([a-zA-Z0-9_\-+=/.]{8,})', 'token="[REDACTED]"'),
        (r'password["\s]*[:=]["\s]*([^\s"\']+)', 'password="[REDACTED]"'),
    ]

    def __init__(self, name: str, level: int = logging.WARNING):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            self.logger.addHandler(handler)

    def sanitize(self, value: Any) -> Any:
        """Mask secrets in strings, recursing into lists and dicts."""
        if isinstance(value, str):
            for pattern, replacement in self._SENSITIVE_PATTERNS:
                value = re.sub(pattern, replacement, value, flags=re.IGNORECASE)
            return value
        if isinstance(value, dict):
            return {key: self.sanitize(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.sanitize(item) for item in value]
        return value

    def log_error_context(self, context: ErrorContext) -> None:
        log_data: Dict[str, Any] = {
            "category": context.category.value,
            "module": context.module,
            "function": context.function,
            "details": self.sanitize(context.details),
        }
        if context.exception:
            log_data["exception"] = type(context.exception).__name__
        if context.suggestions:
            log_data["suggestions"] = context.suggestions

        self.logger.log(
            getattr(logging, context.level.value),
            f"{self.sanitize(context.message)} | {log_data}",
        )


class ErrorHandler:
    """
    Centralized error reporter.

    Reporting an error only logs it; the caller is still responsible for
    raising.
    """

    def __init__(self, logger_name: str = ERROR_LOGGER_NAME, log_level: int = logging.WARNING):
        self.logger = SecureLogger(logger_name, log_level)

    def error(
        self,
        category: ErrorCategory,
        message: str,
        module: str,
        function: str,
        exception: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ) -> ErrorContext:
        context = ErrorContext(
            level=ErrorLevel.ERROR,
            category=category,
            message=message,
            module=module,
            function=function,
            details=details or {},
            exception=exception,
            traceback_info=traceback.format_exc() if exception else None,
            suggestions=suggestions or [],
        )
        self.logger.log_error_context(context)
        return context


_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


def setup_error_handling(log_level: str = "WARNING") -> ErrorHandler:
    """
    Replace the global error handler with one logging at ``log_level``.

    Args:
        log_level: Level name such as ``"DEBUG"`` or ``"ERROR"``

    Returns:
        ErrorHandler: The new global handler
    """
    global _global_error_handler
    level = getattr(logging, log_level.upper(), logging.WARNING)
    _global_error_handler = ErrorHandler(ERROR_LOGGER_NAME, level)
    return _global_error_handler


def log_manifest_error(
    message: str,
    module: str,
    function: str,
    file_path: Optional[str] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """Report a manifest that could not be read or parsed."""
    details = {}
    if file_path is not None:
        details["file_path"] = Path(file_path).name

    return get_error_handler().error(
        ErrorCategory.MANIFEST,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Check that the manifest is valid TOML",
            "Verify [project] dependencies are PEP 508 strings",
        ],
    )


def log_environment_error(
    message: str,
    module: str,
    function: str,
    command: Optional[List[str]] = None,
    returncode: Optional[int] = None,
    exception: Optional[Exception] = None,
) -> ErrorContext:
    """
    Report a failed environment command.

    Credentials in ``command`` (for example an index URL with a password)
    are masked before logging.
    """
    details: Dict[str, Any] = {}
    if command is not None:
        details["command"] = [str(part) for part in command]
    if returncode is not None:
        details["returncode"] = returncode

    return get_error_handler().error(
        ErrorCategory.ENVIRONMENT,
        message,
        module,
        function,
        details=details,
        exception=exception,
        suggestions=[
            "Check that the project's virtual environment is usable",
            "Re-run with DEP_GROUPS_LOG_LEVEL=DEBUG for more output",
        ],
    )
