"""Request dispatch: lookup, validation, annotation, invocation."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError

from ..errors import SchemaValidationError, UnknownToolError
from ..exception_handler import ErrorHandler
from .context import ContextAnnotator
from .registry import BaseTool, ToolResult

logger = logging.getLogger("context_craft")


class ToolDispatcher:
    """Routes a ``(name, arguments)`` request to its registered tool.

    ``Received -> Validated -> Annotated -> Invoked -> Responded``. Unknown
    names raise :class:`UnknownToolError`, malformed arguments raise
    :class:`SchemaValidationError`. Failures inside a tool are recorded by the
    error handler and re-raised unchanged.
    """

    def __init__(
        self,
        tools: BaseTool,
        annotator: ContextAnnotator,
        *,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.tools = tools
        self.annotator = annotator
        self.error_handler = error_handler or ErrorHandler()

    def list_tools(self) -> List[Dict[str, Any]]:
        return self.tools.registry

    async def dispatch(self, name: str, arguments: Mapping[str, Any] | None) -> ToolResult:
        registered = self.tools.get(name)
        if registered is None:
            error = UnknownToolError(name)
            self.error_handler.collect_tool_error(error, name, "lookup")
            raise error

        try:
            params = registered.input_model.model_validate(arguments if arguments is not None else {})
        except ValidationError as exc:
            error = SchemaValidationError(name, exc.errors(include_url=False))
            self.error_handler.collect_tool_error(error, name, "validation")
            raise error from exc

        context = await self.annotator.annotate(
            name, params.model_dump(mode="json", by_alias=True, exclude_none=True)
        )
        logger.info("Invoking tool %s (session %s)", name, context.session_id)

        try:
            return await registered.invoke(params, context)
        except Exception as exc:
            self.error_handler.collect_tool_error(exc, name, "invoke")
            raise


__all__ = ["ToolDispatcher"]
