"""Snippet engine: save, insert and list snippets against a SnippetStorage."""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Mapping, Sequence

from ..errors import FilesystemError
from .model import (
    Snippet,
    SnippetContext,
    SnippetSource,
    SnippetTemplate,
    SnippetUsage,
    Variable,
    utc_now,
)
from .placeholders import detect_tags, merge_unique, render_placeholders, scan_placeholders
from .snippet_storage import SnippetStorage

logger = logging.getLogger("context_craft")

INSERT_REPLACE = "replace"
INSERT_APPEND = "append"
INSERT_PREPEND = "prepend"
INSERT_MODES = (INSERT_REPLACE, INSERT_APPEND, INSERT_PREPEND)
INSERT_SEPARATOR = "\n\n"

SORT_NAME = "name"
SORT_CREATED = "created"
SORT_USAGE = "usage"
SORT_SIZE = "size"

DEFAULT_EXTENSION = "txt"
LANGUAGE_EXTENSIONS: Mapping[str, str] = {
    "typescript": "ts",
    "javascript": "js",
    "python": "py",
    "java": "java",
    "csharp": "cs",
    "go": "go",
    "rust": "rs",
    "vue": "vue",
    "react": "tsx",
    "jsx": "jsx",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "yaml": "yaml",
    "xml": "xml",
}


def extension_for(language: str | None) -> str:
    if not language:
        return DEFAULT_EXTENSION
    return LANGUAGE_EXTENSIONS.get(language.lower(), DEFAULT_EXTENSION)


class KeyedLocks:
    """Lazily created asyncio locks keyed by string.

    Owned by a single engine instance and bound to its event loop. A key's
    lock is dropped once nobody holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass(slots=True)
class InsertResult:
    """Outcome of an insertion; ``missing_variables`` set means nothing was written."""

    snippet: Snippet
    variables: Dict[str, str]
    missing_variables: List[Variable] = field(default_factory=list)
    file_path: Path | None = None
    rendered: str | None = None
    operation: str | None = None

    @property
    def inserted(self) -> bool:
        return not self.missing_variables and self.file_path is not None

    @property
    def line_count(self) -> int:
        return len(self.rendered.split("\n")) if self.rendered is not None else 0


@dataclass(slots=True)
class SnippetListing:
    total: int
    snippets: List[Snippet]
    directories: Dict[str, str] = field(default_factory=dict)

    @property
    def truncated(self) -> bool:
        return self.total > len(self.snippets)


class SnippetEngine:
    """Orchestrates scanning, merging, validation, rendering and persistence."""

    def __init__(self, storage: SnippetStorage, *, working_dir: Path) -> None:
        self.storage = storage
        self.working_dir = Path(working_dir)
        self._snippet_locks = KeyedLocks()
        self._path_locks = KeyedLocks()

    # Save ---------------------------------------------------------------------

    async def save(
        self,
        *,
        name: str,
        description: str,
        code: str,
        language: str = "typescript",
        tags: Sequence[str] | None = None,
        variables: Sequence[Variable] | None = None,
        context: SnippetSource | None = None,
    ) -> Snippet:
        placeholders = scan_placeholders(code)
        declared = _dedupe_variables(variables or [])
        declared_names = {variable.name for variable in declared}
        auto_variables = [
            Variable(
                name=placeholder,
                description=f"Auto-detected variable: {placeholder}",
                required=True,
            )
            for placeholder in dict.fromkeys(placeholders)
            if placeholder not in declared_names
        ]

        source = context or SnippetSource()
        snippet = Snippet(
            id=uuid.uuid4().hex[:8],
            name=name,
            description=description,
            language=language,
            tags=merge_unique(tags or [], detect_tags(code, language)),
            variables=[*declared, *auto_variables],
            context=SnippetContext(
                **source.model_dump(),
                created_at=utc_now(),
                original_code=code,
                line_count=len(code.split("\n")),
                size=len(code),
            ),
            usage=SnippetUsage(),
            template=SnippetTemplate(code=code, placeholders=placeholders),
        )

        async with self._snippet_locks.hold(name):
            if await asyncio.to_thread(self.storage.exists, name):
                logger.info("Overwriting existing snippet %s", name)
            await asyncio.to_thread(
                self.storage.save,
                snippet,
                example=build_example_usage(snippet),
                quick_insert=build_quick_insert(snippet),
            )

        logger.info("Saved snippet %s (%s) with %d variables", name, snippet.id, len(snippet.variables))
        return snippet

    # Insert -------------------------------------------------------------------

    async def insert(
        self,
        name: str,
        *,
        variables: Mapping[str, str] | None = None,
        target_path: str | None = None,
        insert_mode: str = INSERT_REPLACE,
        position: Mapping[str, Any] | None = None,
    ) -> InsertResult:
        if insert_mode not in INSERT_MODES:
            raise ValueError(f"Unsupported insert mode: {insert_mode}")
        if position:
            logger.debug("Ignoring insert position %s for snippet %s", position, name)

        async with self._snippet_locks.hold(name):
            snippet = await asyncio.to_thread(self.storage.load, name)

            merged = merge_variables(snippet.variables, variables or {})
            missing = find_missing_variables(snippet.variables, merged)
            if missing:
                logger.info(
                    "Snippet %s missing required variables: %s",
                    name,
                    ", ".join(variable.name for variable in missing),
                )
                return InsertResult(snippet=snippet, variables=merged, missing_variables=missing)

            template_code = await asyncio.to_thread(self.storage.read_template, name)
            rendered = render_placeholders(template_code, merged)
            destination = self.resolve_target(snippet, target_path)

            async with self._path_locks.hold(str(destination.resolve())):
                operation = await asyncio.to_thread(
                    _write_target, destination, rendered, insert_mode
                )

            snippet.usage.count += 1
            snippet.usage.last_used = utc_now()
            await asyncio.to_thread(self.storage.update_metadata, snippet)

        logger.info("Snippet %s %s %s", name, operation, destination)
        return InsertResult(
            snippet=snippet,
            variables=merged,
            file_path=destination,
            rendered=rendered,
            operation=operation,
        )

    def resolve_target(self, snippet: Snippet, target_path: str | None) -> Path:
        if target_path:
            candidate = Path(target_path).expanduser()
            if not candidate.is_absolute():
                candidate = self.working_dir / candidate
            return candidate
        return self.working_dir / f"{snippet.name}.{extension_for(snippet.language)}"

    # List ---------------------------------------------------------------------

    async def list_snippets(
        self,
        *,
        tags: Sequence[str] | None = None,
        language: str | None = None,
        search: str | None = None,
        limit: int = 10,
        sort_by: str = SORT_CREATED,
    ) -> SnippetListing:
        entries = await asyncio.to_thread(lambda: list(self.storage.iter_snippets()))
        directories = {snippet.name: directory for directory, snippet in entries}
        matches = [
            snippet
            for _, snippet in entries
            if _matches(snippet, tags=tags, language=language, search=search)
        ]
        matches.sort(**_sort_spec(sort_by))
        return SnippetListing(
            total=len(matches),
            snippets=matches[: max(limit, 0)],
            directories=directories,
        )


def merge_variables(declared: Sequence[Variable], supplied: Mapping[str, str]) -> Dict[str, str]:
    """Defaults first (empty string when absent), caller values win."""
    merged = {variable.name: variable.default_value or "" for variable in declared}
    merged.update({key: "" if value is None else str(value) for key, value in supplied.items()})
    return merged


def find_missing_variables(declared: Sequence[Variable], merged: Mapping[str, str]) -> List[Variable]:
    return [variable for variable in declared if variable.required and not merged.get(variable.name)]


def combine_content(existing: str | None, rendered: str, insert_mode: str) -> str:
    if existing is None:
        return rendered
    if insert_mode == INSERT_APPEND:
        return existing + INSERT_SEPARATOR + rendered
    if insert_mode == INSERT_PREPEND:
        return rendered + INSERT_SEPARATOR + existing
    return rendered


def build_example_usage(snippet: Snippet) -> str:
    lines = [
        f"# Example usage of {snippet.name} snippet",
        "",
        f"Generated from template: {snippet.name} ({snippet.language})",
        "",
    ]
    if snippet.variables:
        lines.append("## Available variables")
        lines.append("")
        for variable in snippet.variables:
            default = f" (default: {variable.default_value})" if variable.default_value else ""
            required = " [required]" if variable.required else ""
            lines.append(f"- `{variable.name}`: {variable.description}{default}{required}")
        lines.append("")
    lines.append("## Usage")
    lines.append("")
    lines.append(f'insertSnippet {{"name": "{snippet.name}", "variables": {{...}}}}')
    lines.append("")
    return "\n".join(lines)


def build_quick_insert(snippet: Snippet) -> Dict[str, Any]:
    return {
        "name": snippet.name,
        "description": snippet.description,
        "language": snippet.language,
        "command": "insertSnippet",
        "parameters": {
            "name": snippet.name,
            "variables": {variable.name: variable.default_value or "" for variable in snippet.variables},
        },
        "tags": list(snippet.tags),
    }


def _dedupe_variables(variables: Sequence[Variable]) -> List[Variable]:
    seen: Dict[str, Variable] = {}
    for variable in variables:
        seen.setdefault(variable.name, variable)
    return list(seen.values())


def _write_target(destination: Path, rendered: str, insert_mode: str) -> str:
    try:
        existing: str | None = None
        if destination.exists():
            existing = destination.read_text(encoding="utf-8")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(combine_content(existing, rendered, insert_mode), encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FilesystemError(f"Failed to write {destination}: {exc}") from exc

    if existing is None:
        return "created"
    if insert_mode == INSERT_APPEND:
        return "appended to"
    if insert_mode == INSERT_PREPEND:
        return "prepended to"
    return "replaced"


def _matches(
    snippet: Snippet,
    *,
    tags: Sequence[str] | None,
    language: str | None,
    search: str | None,
) -> bool:
    if language and language.lower() not in (snippet.language or "").lower():
        return False
    if tags and not any(tag in snippet.tags for tag in tags):
        return False
    if search:
        needle = search.lower()
        haystacks = [snippet.name, snippet.description, *snippet.tags]
        if not any(needle in (value or "").lower() for value in haystacks):
            return False
    return True


def _sort_spec(sort_by: str) -> Dict[str, Any]:
    if sort_by == SORT_NAME:
        return {"key": lambda snippet: snippet.name}
    if sort_by == SORT_USAGE:
        return {"key": lambda snippet: snippet.usage.count, "reverse": True}
    if sort_by == SORT_SIZE:
        return {"key": lambda snippet: snippet.context.size, "reverse": True}
    return {"key": lambda snippet: snippet.context.created_at, "reverse": True}


__all__ = [
    "SnippetEngine",
    "InsertResult",
    "SnippetListing",
    "KeyedLocks",
    "LANGUAGE_EXTENSIONS",
    "INSERT_MODES",
    "INSERT_SEPARATOR",
    "extension_for",
    "merge_variables",
    "find_missing_variables",
    "combine_content",
    "build_example_usage",
    "build_quick_insert",
]
