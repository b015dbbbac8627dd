"""Developer-productivity MCP server: scaffolding, snippets and project templates."""

from .config import ServerSettings
from .errors import ContextCraftError
from .scaffold import ProjectTemplateCapture, ScaffoldGenerator
from .snippet import Snippet, SnippetEngine, SnippetStorage

__all__ = [
    "ServerSettings",
    "ContextCraftError",
    "Snippet",
    "SnippetEngine",
    "SnippetStorage",
    "ScaffoldGenerator",
    "ProjectTemplateCapture",
]
