"""Input models for the tools exposed over MCP."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator

from ..scaffold.project_template import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from ..snippet.model import CamelModel, SnippetSource, Variable
from ..tools.code_search import DEFAULT_FILE_TYPES

ScaffoldType = Literal["web-api", "microservice", "frontend-comp", "cli"]
InsertMode = Literal["replace", "append", "prepend"]
SortKey = Literal["name", "created", "usage", "size"]


def _single_segment(value: str) -> str:
    if "/" in value or "\\" in value or value in {".", ".."}:
        raise ValueError("must be a single path segment")
    return value


class ScaffoldInput(CamelModel):
    type: ScaffoldType
    name: str = Field(min_length=1, max_length=50)
    lang: Literal["ts", "js"] = "ts"
    features: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _single_segment(value)


class CodeSearchInput(CamelModel):
    query: str = Field(min_length=1)
    path: str = "."
    file_types: List[str] = Field(default_factory=lambda: list(DEFAULT_FILE_TYPES))
    max_results: int = Field(default=10, ge=1, le=50)


class LintFixInput(CamelModel):
    files: Optional[List[str]] = None
    config: str = ".eslintrc.js"
    fix: bool = True


class RunTestsInput(CamelModel):
    test_files: Optional[List[str]] = None
    test_command: str = Field(default="npm test", min_length=1)
    coverage: bool = False
    watch: bool = False


class TemplateMetadata(CamelModel):
    tech_stack: Optional[List[str]] = None
    features: Optional[List[str]] = None
    tags: Optional[List[str]] = None


class SaveContextTemplateInput(CamelModel):
    """Snapshot of the current project saved as a reusable template."""

    name: str = Field(min_length=1, max_length=50)
    description: str = Field(max_length=200)
    include_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS))
    exclude_patterns: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    metadata: Optional[TemplateMetadata] = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _single_segment(value)


class SaveSnippetInput(CamelModel):
    name: str = Field(min_length=1, max_length=50)
    description: str = Field(max_length=200)
    code: str = Field(min_length=1)
    language: str = "typescript"
    tags: List[str] = Field(default_factory=list)
    variables: List[Variable] = Field(default_factory=list)
    context: Optional[SnippetSource] = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _single_segment(value)


class InsertPosition(CamelModel):
    line: Optional[int] = None
    column: Optional[int] = None


class InsertSnippetInput(CamelModel):
    name: str = Field(min_length=1)
    variables: Dict[str, str] = Field(default_factory=dict)
    target_path: Optional[str] = None
    insert_mode: InsertMode = "replace"
    position: Optional[InsertPosition] = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return _single_segment(value)


class ListSnippetsInput(CamelModel):
    tags: Optional[List[str]] = None
    language: Optional[str] = None
    search: Optional[str] = None
    limit: int = Field(default=10, ge=1, le=50)
    sort_by: SortKey = "created"


__all__ = [
    "ScaffoldInput",
    "CodeSearchInput",
    "LintFixInput",
    "RunTestsInput",
    "TemplateMetadata",
    "SaveContextTemplateInput",
    "SaveSnippetInput",
    "InsertPosition",
    "InsertSnippetInput",
    "ListSnippetsInput",
]
