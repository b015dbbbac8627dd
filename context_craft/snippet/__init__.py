"""Snippet data model, storage and engine."""

from .engine import InsertResult, SnippetEngine, SnippetListing
from .model import Snippet, SnippetContext, SnippetSource, SnippetUsage, Variable
from .snippet_storage import SnippetStorage

__all__ = [
    "Snippet",
    "SnippetContext",
    "SnippetSource",
    "SnippetUsage",
    "Variable",
    "SnippetStorage",
    "SnippetEngine",
    "InsertResult",
    "SnippetListing",
]
