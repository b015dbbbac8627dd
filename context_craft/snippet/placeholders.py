"""Placeholder scanning, flat rendering and tag classification.

Token grammar: ``{{`` IDENT ``}}`` with IDENT = ``[A-Za-z_][A-Za-z0-9_]*``.
No whitespace is allowed inside the braces and there is no escape syntax, so a
literal ``{{name}}`` in source text is always treated as a placeholder.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Mapping, Pattern, Tuple

PLACEHOLDER_PATTERN: Pattern[str] = re.compile(r"\{\{([A-Za-z_][A-Za-z0-9_]*)\}\}")

LANGUAGE_TAGS: Mapping[str, Tuple[str, ...]] = {
    "typescript": ("ts", "typed"),
    "javascript": ("js", "vanilla"),
    "python": ("py", "python"),
    "react": ("react", "jsx", "tsx"),
    "vue": ("vue", "composition-api"),
}

CONTENT_TAGS: Tuple[Tuple[str, Pattern[str]], ...] = (
    ("function", re.compile(r"\bfunction\b|=>|\bdef\s+\w")),
    ("class", re.compile(r"\bclass\b|\binterface\b")),
    ("module", re.compile(r"\bimport\b|\bexport\b")),
    ("async", re.compile(r"\basync\b|\bawait\b")),
    ("react-hooks", re.compile(r"\buse(?:State|Effect|Memo|Callback|Ref|Context|Reducer)\b")),
)


def scan_placeholders(text: str) -> List[str]:
    """Return every placeholder occurrence in order, duplicates included."""
    return PLACEHOLDER_PATTERN.findall(text)


def unique_placeholders(text: str) -> List[str]:
    """Return distinct placeholder names in order of first appearance."""
    return list(dict.fromkeys(scan_placeholders(text)))


def render_placeholders(text: str, values: Mapping[str, str]) -> str:
    """Substitute known placeholders; unknown ones are left verbatim.

    Substitution is a single pass, so values containing ``{{...}}`` are not
    expanded again.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in values:
            return str(values[key])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


def detect_tags(code: str, language: str | None) -> List[str]:
    """Classify code into tags from its language and content."""
    tags: List[str] = []
    if language:
        tags.extend(LANGUAGE_TAGS.get(language.lower(), ()))
    for tag, pattern in CONTENT_TAGS:
        if pattern.search(code):
            tags.append(tag)
    return merge_unique(tags)


def merge_unique(*groups: Iterable[str]) -> List[str]:
    """Concatenate ``groups`` dropping duplicates while keeping order."""
    merged: dict[str, None] = {}
    for group in groups:
        for item in group:
            merged.setdefault(item, None)
    return list(merged)


__all__ = [
    "PLACEHOLDER_PATTERN",
    "LANGUAGE_TAGS",
    "CONTENT_TAGS",
    "scan_placeholders",
    "unique_placeholders",
    "render_placeholders",
    "detect_tags",
    "merge_unique",
]
