"""Error kinds raised by the snippet engine, scaffolding and tool dispatcher."""

from __future__ import annotations

from typing import Any, List


class ContextCraftError(Exception):
    """Base class for every error surfaced to tool callers."""


class UnknownToolError(ContextCraftError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class SchemaValidationError(ContextCraftError):
    """Tool arguments did not satisfy the tool's input model."""

    def __init__(self, tool_name: str, errors: List[dict[str, Any]]) -> None:
        details = "; ".join(_format_error(error) for error in errors) or "invalid arguments"
        super().__init__(f"Invalid arguments for tool '{tool_name}': {details}")
        self.tool_name = tool_name
        self.errors = errors


class SnippetNotFoundError(ContextCraftError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Snippet '{name}' not found")
        self.name = name


class TemplateDirectoryNotFoundError(ContextCraftError):
    def __init__(self, template_type: str) -> None:
        super().__init__(f"Template type '{template_type}' not found")
        self.template_type = template_type


class FilesystemError(ContextCraftError):
    """Wraps an underlying read or write failure."""


def _format_error(error: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


__all__ = [
    "ContextCraftError",
    "UnknownToolError",
    "SchemaValidationError",
    "SnippetNotFoundError",
    "TemplateDirectoryNotFoundError",
    "FilesystemError",
]
