"""Tool registration: ``@tool`` methods on a ``BaseTool`` become dispatchable tools."""
from __future__ import annotations

import inspect
import json
from collections.abc import Mapping
from dataclasses import dataclass
from itertools import count
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Type, get_type_hints

from pydantic import BaseModel

from .context import ToolContext

ToolResult = Dict[str, Any]
AsyncToolHandler = Callable[[BaseModel, ToolContext], Awaitable[ToolResult]]

_declaration_order = count()


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """What ``@tool`` attaches to a method; resolved when the tool set is built."""

    name: Optional[str]
    description: Optional[str]
    schema: Optional[Type[BaseModel]]
    order: int


@dataclass(slots=True)
class RegisteredTool:
    """Uniform tool interface: name, description, input model and handler."""

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: AsyncToolHandler

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()

    async def invoke(self, params: BaseModel, context: ToolContext) -> ToolResult:
        return await self.handler(params, context)


def tool(
    name: Optional[str] | Callable[..., Any] = None,
    *,
    description: Optional[str] = None,
    schema: Optional[Type[BaseModel]] = None,
):
    """Mark an async ``(self, params, context)`` method as a tool.

    Usable bare (``@tool``) or with arguments. The tool name defaults to the
    method name, the description to its docstring and the input model to the
    method's pydantic-typed parameter.
    """
    if callable(name):
        return _mark(name, ToolSpec(None, description, schema, next(_declaration_order)))

    def decorator(method: Callable[..., Any]) -> Callable[..., Any]:
        return _mark(method, ToolSpec(name, description, schema, next(_declaration_order)))

    return decorator


def _mark(method: Callable[..., Any], spec: ToolSpec) -> Callable[..., Any]:
    method.__tool_spec__ = spec  # type: ignore[attr-defined]
    return method


class BaseTool:
    """A set of tools declared as ``@tool`` methods.

    Tools are collected once, at construction, in declaration order. Tool
    names must be unique within the set.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}
        for registered in self._collect():
            if registered.name in self._tools:
                raise ValueError(f"Duplicate tool name: {registered.name}")
            self._tools[registered.name] = registered

    def get(self, name: str) -> Optional[RegisteredTool]:
        return self._tools.get(name)

    def __iter__(self) -> Iterator[RegisteredTool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    @property
    def registry(self) -> List[dict[str, Any]]:
        """Tool listing entries: name, description, inputSchema."""
        return [
            {
                "name": registered.name,
                "description": registered.description,
                "inputSchema": registered.input_schema,
            }
            for registered in self._tools.values()
        ]

    def _collect(self) -> List[RegisteredTool]:
        marked = [
            (member.__tool_spec__, attr)
            for attr, member in inspect.getmembers(type(self))
            if hasattr(member, "__tool_spec__")
        ]
        marked.sort(key=lambda item: item[0].order)

        collected: List[RegisteredTool] = []
        for spec, attr in marked:
            method = getattr(self, attr)
            if not inspect.iscoroutinefunction(method):
                raise TypeError(f"Tool method '{attr}' must be async")
            collected.append(
                RegisteredTool(
                    name=spec.name or attr,
                    description=spec.description or inspect.getdoc(method) or "",
                    input_model=spec.schema or _input_model_of(method),
                    handler=_result_normalizing(method),
                )
            )
        return collected


def _input_model_of(method: Callable[..., Any]) -> Type[BaseModel]:
    hints = get_type_hints(method)
    for param in inspect.signature(method).parameters:
        hint = hints.get(param)
        if inspect.isclass(hint) and issubclass(hint, BaseModel):
            return hint
    raise TypeError(f"Tool method '{method.__name__}' has no pydantic input parameter")


def _result_normalizing(method: Callable[..., Awaitable[Any]]) -> AsyncToolHandler:
    async def handler(params: BaseModel, context: ToolContext) -> ToolResult:
        return as_tool_result(await method(params, context))

    return handler


def as_tool_result(value: Any) -> ToolResult:
    """Coerce a handler's return value into ``{"content": [...], **fields}``."""
    if isinstance(value, dict) and "content" in value:
        return value
    if isinstance(value, Mapping):
        fields = dict(value)
        return text_result(json.dumps(fields, indent=2, default=str), **fields)
    return text_result("" if value is None else str(value))


def text_result(text: str, **fields: Any) -> ToolResult:
    """Build a tool result with one text block plus structured fields."""
    return {"content": [{"type": "text", "text": text}], **fields}


__all__ = ["BaseTool", "RegisteredTool", "ToolSpec", "ToolResult", "tool", "text_result", "as_tool_result"]
