from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model persisted and exchanged with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Variable(CamelModel):
    """A named substitution point inside a snippet template."""

    name: str
    description: str = ""
    default_value: str | None = None
    required: bool = False


class LineRange(CamelModel):
    start: int
    end: int


class SnippetSource(CamelModel):
    """Caller-supplied provenance of a snippet."""

    file_path: str | None = None
    line_range: LineRange | None = None
    imports: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)


class SnippetContext(SnippetSource):
    """Provenance captured when the snippet was saved."""

    created_at: datetime = Field(default_factory=utc_now)
    original_code: str = ""
    line_count: int = 0
    size: int = 0


class SnippetUsage(CamelModel):
    count: int = 0
    last_used: datetime | None = None


class SnippetTemplate(CamelModel):
    code: str
    placeholders: List[str] = Field(default_factory=list)


class Snippet(CamelModel):
    """Metadata document stored as ``snippet.json``."""

    id: str
    name: str
    description: str = ""
    language: str = "typescript"
    tags: List[str] = Field(default_factory=list)
    variables: List[Variable] = Field(default_factory=list)
    context: SnippetContext = Field(default_factory=SnippetContext)
    usage: SnippetUsage = Field(default_factory=SnippetUsage)
    template: SnippetTemplate

    def variable_names(self) -> List[str]:
        return [variable.name for variable in self.variables]


__all__ = [
    "CamelModel",
    "Variable",
    "LineRange",
    "SnippetSource",
    "SnippetContext",
    "SnippetUsage",
    "SnippetTemplate",
    "Snippet",
    "utc_now",
]
