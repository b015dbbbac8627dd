"""Keyword search over project files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from ..utils.file_loader import FileLoader

logger = logging.getLogger("context_craft")

DEFAULT_FILE_TYPES: Sequence[str] = (".ts", ".js", ".tsx", ".jsx", ".py", ".java", ".go", ".rs")
MAX_LINES_PER_FILE = 5
PREVIEW_LENGTH = 300


@dataclass(slots=True)
class LineMatch:
    line: int
    content: str


@dataclass(slots=True)
class FileMatch:
    file: str
    matches: List[LineMatch] = field(default_factory=list)
    preview: str = ""

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "matches": [{"line": match.line, "content": match.content} for match in self.matches],
            "preview": self.preview,
        }


def search_code(
    query: str,
    root: Path,
    *,
    file_types: Sequence[str] = DEFAULT_FILE_TYPES,
    max_results: int = 10,
) -> List[FileMatch]:
    """Case-insensitive substring search, at most ``max_results`` files."""
    needle = query.lower()
    patterns = [f"*{ext if ext.startswith('.') else '.' + ext}" for ext in file_types]
    loader = FileLoader(patterns=patterns, exclude_patterns=["dist/**", "**/dist/**"])

    results: List[FileMatch] = []
    for file_data in loader.load_files(root):
        if needle not in file_data.content.lower():
            continue
        lines = [
            LineMatch(line=index, content=line.strip())
            for index, line in enumerate(file_data.content.split("\n"), start=1)
            if needle in line.lower()
        ]
        if not lines:
            continue
        preview = file_data.content[:PREVIEW_LENGTH]
        if len(file_data.content) > PREVIEW_LENGTH:
            preview += "..."
        results.append(
            FileMatch(file=file_data.relative_path, matches=lines[:MAX_LINES_PER_FILE], preview=preview)
        )
        if len(results) >= max_results:
            break

    logger.debug("Code search for %r under %s matched %d files", query, root, len(results))
    return results


__all__ = ["search_code", "FileMatch", "LineMatch", "DEFAULT_FILE_TYPES"]
