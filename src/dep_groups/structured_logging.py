"""
Structured logging configuration for dep-groups.

Emits machine-readable JSON events for manifest reads and writes, exports,
reconciliation and external tool runs.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
        }
        message = record.getMessage()
        if message:
            log_entry["message"] = message

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and key != "message":
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class OperationLogger:
    """Structured logger for one component of an operation."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"dep_groups.{name}")
        self._setup_logger()
        self.context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def set_context(self, workspace_root: Optional[str] = None, operation: Optional[str] = None) -> None:
        self.context = {}
        if workspace_root:
            self.context["workspace_root"] = workspace_root
        if operation:
            self.context["operation"] = operation

    def clear_context(self) -> None:
        self.context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.context, **kwargs}
        getattr(self.logger, level)("", extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log("debug", event_type, **kwargs)


# Global logger instances
_manifest_logger = OperationLogger("manifest")
_export_logger = OperationLogger("export")
_reconcile_logger = OperationLogger("reconcile")
_environment_logger = OperationLogger("environment")

_ALL_LOGGERS = [_manifest_logger, _export_logger, _reconcile_logger, _environment_logger]


def get_manifest_logger() -> OperationLogger:
    return _manifest_logger


def get_export_logger() -> OperationLogger:
    return _export_logger


def get_reconcile_logger() -> OperationLogger:
    return _reconcile_logger


def get_environment_logger() -> OperationLogger:
    return _environment_logger


def log_manifest_loaded(file_path: str, required_count: int, group_names: List[str]) -> None:
    """Log a successful manifest load."""
    _manifest_logger.debug(
        "manifest_loaded",
        file_path=file_path,
        required_count=required_count,
        groups=group_names,
    )


def log_manifest_write(file_path: str, written: bool) -> None:
    """Log the outcome of a compare-and-write step."""
    if written:
        _manifest_logger.info("manifest_written", file_path=file_path)
    else:
        _manifest_logger.debug("manifest_unchanged", file_path=file_path)


def log_export_complete(output_file: str, dependency_count: int, groups: List[str]) -> None:
    """Log export completion event."""
    _export_logger.info(
        "export_completed",
        output_file=output_file,
        dependency_count=dependency_count,
        groups=groups,
    )


def log_reconcile_complete(pinned: List[str], added: Optional[List[str]] = None) -> None:
    """Log which dependencies were re-pinned or newly recorded."""
    log_data: Dict[str, Any] = {"pinned": pinned}
    if added:
        log_data["added"] = added
    _reconcile_logger.info("reconcile_completed", **log_data)


def log_tool_command(module_name: str, tool_args: List[str], returncode: int) -> None:
    """Log an external module run inside the environment."""
    log_data = {"module_name": module_name, "tool_args": tool_args, "returncode": returncode}
    if returncode != 0:
        _environment_logger.warning("tool_command_failed", **log_data)
    else:
        _environment_logger.debug("tool_command_completed", **log_data)


def set_operation_context(workspace_root: Optional[str] = None, operation: Optional[str] = None) -> None:
    """Set context shared by all component loggers."""
    for logger in _ALL_LOGGERS:
        logger.set_context(workspace_root, operation)


def clear_operation_context() -> None:
    for logger in _ALL_LOGGERS:
        logger.clear_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    if enable_json:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(event_type)s")

    for logger in _ALL_LOGGERS:
        logger.logger.setLevel(level)
        for handler in logger.logger.handlers:
            handler.setFormatter(formatter)
