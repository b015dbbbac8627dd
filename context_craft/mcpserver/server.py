"""MCP server exposing the context-craft tools over stdio."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from ..config import ServerSettings
from ..exception_handler import ErrorHandler
from .context import ContextAnnotator, SessionStore
from .dispatcher import ToolDispatcher
from .registry import ToolResult
from .tools import ContextCraftTools

logger = logging.getLogger("context_craft")

SERVER_NAME = "context-craft"


class ServiceContext:
    """Lazy dependency container for MCP tool handlers."""

    def __init__(self, settings: ServerSettings | None = None) -> None:
        self._settings = settings
        self._dispatcher: ToolDispatcher | None = None
        self.error_handler = ErrorHandler()

    @property
    def settings(self) -> ServerSettings:
        if self._settings is None:
            self._settings = ServerSettings.from_env()
        return self._settings

    def dispatcher(self) -> ToolDispatcher:
        if self._dispatcher is None:
            annotator = ContextAnnotator(SessionStore(self.settings.session_limit))
            self._dispatcher = ToolDispatcher(
                ContextCraftTools(self.settings),
                annotator,
                error_handler=self.error_handler,
            )
        return self._dispatcher


def to_call_tool_result(result: ToolResult) -> Tuple[List[types.TextContent], Dict[str, Any]]:
    """Split a tool result into text content blocks and structured fields."""
    blocks: List[types.TextContent] = []
    for block in result.get("content", []):
        if isinstance(block, dict) and block.get("type") == "text":
            blocks.append(types.TextContent(type="text", text=str(block.get("text", ""))))
        else:
            blocks.append(types.TextContent(type="text", text=json.dumps(block, default=str)))

    structured = {key: value for key, value in result.items() if key != "content"}
    return blocks, json.loads(json.dumps(structured, default=str))


def create_server(settings: ServerSettings | None = None) -> Server:
    """Create a low-level MCP server wired to the tool dispatcher."""

    services = ServiceContext(settings)
    server: Server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        return [
            types.Tool(
                name=entry["name"],
                description=entry["description"],
                inputSchema=entry["inputSchema"],
            )
            for entry in services.dispatcher().list_tools()
        ]

    # Arguments are validated by the dispatcher so callers get its error messages.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: Dict[str, Any]) -> Tuple[List[types.TextContent], Dict[str, Any]]:
        result = await services.dispatcher().dispatch(name, arguments)
        return to_call_tool_result(result)

    return server


async def serve_stdio(settings: ServerSettings | None = None) -> None:
    """Serve MCP requests on stdin/stdout until the client disconnects."""
    server = create_server(settings)
    logger.info("Starting %s MCP server on stdio", SERVER_NAME)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )
    logger.info("MCP server stopped")


__all__ = ["ServiceContext", "create_server", "serve_stdio", "to_call_tool_result"]
