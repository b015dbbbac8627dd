"""Context annotation run before every tool invocation."""

from __future__ import annotations

import json
import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..snippet.model import utc_now

logger = logging.getLogger("context_craft")

DEFAULT_PROJECT_CONTEXT = "TypeScript project with ESLint, Vitest, Fastify patterns"
DEFAULT_CODING_STANDARDS = "Clean architecture, SOLID principles, comprehensive testing"
PARAMS_PREVIEW_LENGTH = 200


@dataclass(slots=True)
class ThinkingStep:
    step: int
    type: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "type": self.type, "content": self.content}


@dataclass(slots=True)
class ToolContext:
    """Annotation handed to a tool handler alongside its validated input."""

    session_id: str
    operation: str
    thinking_log: List[ThinkingStep] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)

    def summary_lines(self) -> List[str]:
        return [f"{step.step}. {step.content}" for step in self.thinking_log]


class SessionStore:
    """Bounded mapping of session id to ToolContext, oldest evicted first."""

    def __init__(self, max_sessions: int = 100) -> None:
        self.max_sessions = max(max_sessions, 1)
        self._sessions: "OrderedDict[str, ToolContext]" = OrderedDict()

    def put(self, context: ToolContext) -> None:
        self._sessions[context.session_id] = context
        self._sessions.move_to_end(context.session_id)
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted session %s", evicted)

    def get(self, session_id: str) -> Optional[ToolContext]:
        return self._sessions.get(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def clear(self) -> None:
        self._sessions.clear()


class ContextAnnotator:
    """Builds a ToolContext for each call and records it in the session store.

    The thinking log is a fixed four-step outline of the request; it does not
    inspect the project beyond the configured context strings.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        project_context: str = DEFAULT_PROJECT_CONTEXT,
        coding_standards: str = DEFAULT_CODING_STANDARDS,
    ) -> None:
        self.store = store
        self.project_context = project_context
        self.coding_standards = coding_standards

    async def annotate(self, operation: str, params: Mapping[str, Any]) -> ToolContext:
        session_id = f"{operation}-{uuid.uuid4().hex[:12]}"
        rendered = json.dumps(dict(params), default=str, ensure_ascii=False)
        if len(rendered) > PARAMS_PREVIEW_LENGTH:
            rendered = rendered[:PARAMS_PREVIEW_LENGTH] + "..."

        steps = [
            ThinkingStep(1, "analysis", f"Analyzing {operation} request with {rendered}"),
            ThinkingStep(2, "context", f"Project context: {self.project_context}"),
            ThinkingStep(3, "standards", f"Applying coding standards: {self.coding_standards}"),
            ThinkingStep(4, "plan", f"Executing {operation}"),
        ]
        context = ToolContext(session_id=session_id, operation=operation, thinking_log=steps)
        self.store.put(context)
        logger.debug("Annotated %s as session %s", operation, session_id)
        return context


__all__ = ["ThinkingStep", "ToolContext", "SessionStore", "ContextAnnotator"]
