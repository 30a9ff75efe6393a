"""
Operation Logger for Gnosis DeepLog

Mirrors recorded operations onto a standard ``logging`` logger as they happen.
The call tree is the record; this is a live side channel for watching a run,
enabled with ``log_operations`` in the configuration.
"""

import json
import logging
import sys
import threading
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

import psutil

from .call_tree import CallTreeNode, format_value

if TYPE_CHECKING:
    from ..config import DeepLogConfig

__all__ = ["LogFormat", "LogLevel", "OperationLogger"]


class LogFormat(Enum):
    """Supported log output formats."""

    CONSOLE = "console"
    STRUCTURED = "structured"
    JSON = "json"


class LogLevel(Enum):
    """Extended log levels for fine-grained control."""

    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR


logging.addLevelName(LogLevel.TRACE.value, "TRACE")


def _resolve_level(level: Union[int, str, LogLevel]) -> int:
    if isinstance(level, LogLevel):
        return level.value
    if isinstance(level, str):
        return LogLevel[level.upper()].value
    return level


class OperationLogger:
    """Logs each recorded operation when it starts and when it finishes."""

    def __init__(
        self,
        name: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        format: LogFormat = LogFormat.CONSOLE,
        level: Union[int, str, LogLevel] = LogLevel.DEBUG,
        include_performance: bool = False,
        max_value_length: int = 200,
    ):
        self.name = name or "deeplog.operations"
        self.format = format
        self.level = _resolve_level(level)
        self.include_performance = include_performance
        self.max_value_length = max_value_length
        self.logger = logger or self._setup_logger()

        # Performance tracking
        self.operation_count = 0
        self.error_count = 0
        self.total_time = 0.0
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: "DeepLogConfig") -> "OperationLogger":
        return cls(
            format=LogFormat(config.log_format),
            level=config.log_level,
            include_performance=config.include_performance,
            max_value_length=config.max_value_length,
        )

    def _setup_logger(self) -> logging.Logger:
        """Set up a Python logger with a console handler if it has none."""
        logger = logging.getLogger(self.name)
        logger.setLevel(self.level)

        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            logger.addHandler(handler)

        return logger

    def log_enter(self, label: str, node: CallTreeNode, depth: int) -> None:
        """Log the start of an operation on the handle labelled ``label``."""
        entry = {
            "type": "enter",
            "timestamp": datetime.now().isoformat(),
            "handle": label,
            "action": str(node.action),
            "detail": self._format_detail(node.detail),
            "depth": depth,
        }
        self._log_entry(entry)

    def log_exit(
        self,
        label: str,
        node: CallTreeNode,
        execution_time: float,
        error: Optional[BaseException] = None,
    ) -> None:
        """Log the end of an operation, successful or not."""
        entry: Dict[str, Any] = {
            "type": "exit",
            "timestamp": datetime.now().isoformat(),
            "handle": label,
            "action": str(node.action),
            "execution_time": execution_time,
            "children": len(node.children),
        }

        if error is not None:
            entry["error"] = str(error)
            entry["error_type"] = type(error).__name__

        if self.include_performance:
            entry["performance"] = {
                "execution_time_ms": execution_time * 1000,
                "memory_usage": self._get_memory_usage(),
            }

        self._log_entry(entry)

        with self._lock:
            self.operation_count += 1
            self.total_time += execution_time
            if error is not None:
                self.error_count += 1

    def _log_entry(self, entry: Dict[str, Any]) -> None:
        if self.format == LogFormat.JSON:
            message = json.dumps(entry, default=str)
        elif self.format == LogFormat.STRUCTURED:
            message = self._format_structured(entry)
        else:
            message = self._format_console(entry)

        # StopIteration is ordinary iterator exhaustion.
        if entry.get("error_type") and entry["error_type"] != "StopIteration":
            self.logger.error(message)
        else:
            self.logger.log(self.level, message)

    def _format_console(self, entry: Dict[str, Any]) -> str:
        """Format log entry for console output."""
        if entry["type"] == "enter":
            detail = f" {entry['detail']}" if entry["detail"] else ""
            return f"→ {entry['handle']} {entry['action']}{detail}"
        if "error" in entry:
            return (
                f"← {entry['handle']} {entry['action']} ✗ {entry['error_type']}: {entry['error']} "
                f"({entry['execution_time']:.3f}s)"
            )
        return f"← {entry['handle']} {entry['action']} ({entry['execution_time']:.3f}s)"

    def _format_structured(self, entry: Dict[str, Any]) -> str:
        """Format as structured log."""
        parts = []
        for key, value in entry.items():
            if isinstance(value, dict):
                value = json.dumps(value, default=str)
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _format_detail(self, detail: Any) -> str:
        if detail is None:
            return ""
        if type(detail) is dict:
            text = ", ".join(f"{key}={self._format_nested(value)}" for key, value in detail.items())
        else:
            text = format_value(detail)
        return self._truncate_value(text)

    def _format_nested(self, value: Any) -> str:
        value_type = type(value)
        if issubclass(value_type, (list, tuple)):
            return "[" + ", ".join(format_value(item) for item in value) + "]"
        if issubclass(value_type, dict):
            return "{" + ", ".join(f"{k}: {format_value(v)}" for k, v in value.items()) + "}"
        return format_value(value)

    def _truncate_value(self, value: str) -> str:
        """Truncate long values."""
        if len(value) > self.max_value_length:
            return value[: self.max_value_length] + "..."
        return value

    def _get_memory_usage(self) -> Optional[int]:
        """Get current memory usage in bytes."""
        try:
            return psutil.Process().memory_info().rss
        except psutil.Error:
            return None

    def get_stats(self) -> Dict[str, Any]:
        """Get logger statistics."""
        with self._lock:
            avg_time = self.total_time / self.operation_count if self.operation_count > 0 else 0
            return {
                "operation_count": self.operation_count,
                "error_count": self.error_count,
                "total_time": self.total_time,
                "average_time": avg_time,
            }
