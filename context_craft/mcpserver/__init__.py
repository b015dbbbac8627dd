"""MCP tool server: registry, dispatcher and stdio transport."""

from .context import ContextAnnotator, SessionStore, ToolContext
from .dispatcher import ToolDispatcher
from .registry import BaseTool, RegisteredTool, tool
from .server import create_server, serve_stdio
from .tools import ContextCraftTools

__all__ = [
    "BaseTool",
    "RegisteredTool",
    "tool",
    "ToolContext",
    "SessionStore",
    "ContextAnnotator",
    "ToolDispatcher",
    "ContextCraftTools",
    "create_server",
    "serve_stdio",
]
