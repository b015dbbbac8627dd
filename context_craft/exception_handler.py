import logging
import sys
import traceback
from typing import Any, Dict, List

from .errors import ContextCraftError, SchemaValidationError, UnknownToolError

LOGGER_NAME = "context_craft"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger.

    Output goes to stderr because stdout carries the MCP protocol stream.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger


class ErrorHandler:
    """Centralized error logging and aggregation for tool invocations."""

    def __init__(self, logger: logging.Logger | None = None, *, max_errors: int = 200):
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.max_errors = max_errors
        self.errors: List[Dict[str, Any]] = []

    def handle_error(self, error: Exception, context: Dict[str, Any]) -> Dict[str, Any]:
        """Log ``error`` with its context and keep it for the summary."""
        error_info = {
            "type": type(error).__name__,
            "message": str(error),
            "context": context,
            "traceback": traceback.format_exc() if self.logger.isEnabledFor(logging.DEBUG) else None,
        }

        if isinstance(error, (UnknownToolError, SchemaValidationError)):
            self.logger.warning("%s: %s | Context: %s", error_info["type"], error_info["message"], context)
        elif isinstance(error, ContextCraftError):
            self.logger.error("%s: %s | Context: %s", error_info["type"], error_info["message"], context)
        else:
            self.logger.exception("%s: %s | Context: %s", error_info["type"], error_info["message"], context)

        self.errors.append(error_info)
        if len(self.errors) > self.max_errors:
            del self.errors[: len(self.errors) - self.max_errors]

        return error_info

    def collect_tool_error(self, error: Exception, tool_name: str, stage: str) -> Dict[str, Any]:
        """Collect an error raised while dispatching ``tool_name``."""
        return self.handle_error(error, {"tool": tool_name, "stage": stage})

    def get_error_summary(self) -> Dict[str, Any]:
        """Generate summary of all collected errors."""
        if not self.errors:
            return {"total_errors": 0, "error_types": {}, "failed_tools": []}

        error_types: Dict[str, int] = {}
        failed_tools = []

        for error in self.errors:
            error_type = error["type"]
            error_types[error_type] = error_types.get(error_type, 0) + 1

            context = error.get("context", {})
            if "tool" in context:
                failed_tools.append({
                    "tool": context["tool"],
                    "error": error["message"],
                    "stage": context.get("stage", "unknown"),
                })

        return {
            "total_errors": len(self.errors),
            "error_types": error_types,
            "failed_tools": failed_tools,
        }

    def clear_errors(self) -> None:
        self.errors.clear()
