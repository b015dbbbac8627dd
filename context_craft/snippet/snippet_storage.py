from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple

from pydantic import ValidationError

from ..errors import FilesystemError, SnippetNotFoundError
from .model import Snippet

logger = logging.getLogger("context_craft")

METADATA_FILE = "snippet.json"
TEMPLATE_FILE = "template.code"
EXAMPLE_FILE = "example.md"
QUICK_INSERT_FILE = "quick-insert.json"


class SnippetStorage:
    """Filesystem-backed snippet repository, one directory per snippet name.

    Methods are blocking; the engine runs them in worker threads.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def snippet_dir(self, name: str) -> Path:
        return self.root / name

    def exists(self, name: str) -> bool:
        return (self.snippet_dir(name) / METADATA_FILE).is_file()

    def save(
        self,
        snippet: Snippet,
        *,
        example: str,
        quick_insert: Dict[str, Any],
    ) -> Path:
        """Persist every artifact of ``snippet``, replacing any previous version.

        ``snippet.json`` is written last so that a directory without metadata
        is never mistaken for a complete snippet.
        """
        directory = self.snippet_dir(snippet.name)
        try:
            if directory.exists():
                shutil.rmtree(directory)
            directory.mkdir(parents=True, exist_ok=True)
            (directory / TEMPLATE_FILE).write_text(snippet.template.code, encoding="utf-8")
            (directory / EXAMPLE_FILE).write_text(example, encoding="utf-8")
            _write_json(directory / QUICK_INSERT_FILE, quick_insert)
            _write_json(directory / METADATA_FILE, snippet.to_document())
        except OSError as exc:
            raise FilesystemError(f"Failed to save snippet '{snippet.name}': {exc}") from exc
        return directory

    def load(self, name: str) -> Snippet:
        metadata_path = self.snippet_dir(name) / METADATA_FILE
        if not metadata_path.is_file():
            raise SnippetNotFoundError(name)
        try:
            return _read_snippet(metadata_path)
        except OSError as exc:
            raise FilesystemError(f"Failed to read snippet '{name}': {exc}") from exc
        except (json.JSONDecodeError, ValidationError) as exc:
            raise FilesystemError(f"Snippet '{name}' has invalid metadata: {exc}") from exc

    def read_template(self, name: str) -> str:
        try:
            return (self.snippet_dir(name) / TEMPLATE_FILE).read_text(encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(f"Failed to read template for snippet '{name}': {exc}") from exc

    def update_metadata(self, snippet: Snippet) -> None:
        try:
            _write_json(self.snippet_dir(snippet.name) / METADATA_FILE, snippet.to_document())
        except OSError as exc:
            raise FilesystemError(f"Failed to update snippet '{snippet.name}': {exc}") from exc

    def iter_snippets(self) -> Iterator[Tuple[str, Snippet]]:
        """Yield ``(directory name, snippet)`` pairs, skipping unreadable entries."""
        if not self.root.is_dir():
            return
        for directory in sorted(self.root.iterdir()):
            metadata_path = directory / METADATA_FILE
            if not directory.is_dir() or not metadata_path.is_file():
                continue
            try:
                snippet = _read_snippet(metadata_path)
            except (OSError, json.JSONDecodeError, ValidationError) as exc:
                logger.warning("Skipping invalid snippet %s: %s", directory.name, exc)
                continue
            yield directory.name, snippet


def _read_snippet(path: Path) -> Snippet:
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    return Snippet.model_validate(data)


def _write_json(path: Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")


__all__ = [
    "SnippetStorage",
    "METADATA_FILE",
    "TEMPLATE_FILE",
    "EXAMPLE_FILE",
    "QUICK_INSERT_FILE",
]
