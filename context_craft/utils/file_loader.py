import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, NamedTuple, Pattern, Sequence


class FileInfo(NamedTuple):
    """Information about a detected project file."""
    path: str
    relative_path: str
    size: int
    extension: str


class FileData(NamedTuple):
    """Pre-loaded file data."""
    path: str
    relative_path: str
    content: str
    size: int
    extension: str


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> Pattern[str]:
    """Translate a glob pattern into a regex over POSIX relative paths.

    ``**/`` matches zero or more directories, ``**`` matches anything,
    ``*`` and ``?`` never cross a ``/``. Character classes are not supported.
    """
    normalized = pattern.replace("\\", "/").lstrip("/")
    parts: List[str] = []
    index = 0
    while index < len(normalized):
        char = normalized[index]
        if char == "*":
            if normalized.startswith("**/", index):
                parts.append("(?:.*/)?")
                index += 3
                continue
            if normalized.startswith("**", index):
                parts.append(".*")
                index += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts))


def matches_any(relative_path: str, patterns: Iterable[str]) -> bool:
    """Return True if ``relative_path`` matches any of ``patterns``.

    Patterns without a ``/`` are matched against the file name only.
    """
    posix_path = relative_path.replace("\\", "/")
    filename = posix_path.rsplit("/", 1)[-1]
    for pattern in patterns:
        if not pattern:
            continue
        candidate = posix_path if "/" in pattern.rstrip("/") else filename
        if glob_to_regex(pattern).fullmatch(candidate):
            return True
    return False


class FileLoader:
    """Pattern-driven file discovery under a project root."""

    logger = logging.getLogger("context_craft")

    # Directories never descended into
    EXCLUDE_DIRS = {
        '__pycache__', '.venv', 'venv', 'node_modules', '.git', '.svn', '.hg',
        '.pytest_cache', '.tox', '.mypy_cache', '.DS_Store'
    }

    DEFAULT_MAX_FILE_SIZE = 500 * 1024

    def __init__(
        self,
        patterns: Sequence[str] | None = None,
        exclude_patterns: Sequence[str] | None = None,
        max_file_size=None,
        skip_paths: Sequence[Path] | None = None,
    ):
        """Initialize file loader.

        Args:
            patterns: Glob-style patterns to include (default: every file)
            exclude_patterns: Glob-style patterns to drop after inclusion
            max_file_size: Optional maximum file size in bytes. Defaults to ~500 KB;
                pass 0 to disable the size cap.
            skip_paths: Absolute directories that are never walked
        """
        self.patterns = list(patterns) if patterns else []
        self.exclude_patterns = list(exclude_patterns) if exclude_patterns else []
        if max_file_size == 0:
            self.max_file_size = None
        elif max_file_size is None:
            self.max_file_size = self.DEFAULT_MAX_FILE_SIZE
        else:
            self.max_file_size = max_file_size
        self.skip_paths = {Path(path).resolve() for path in (skip_paths or [])}

    def detect_files(self, path: str | os.PathLike) -> List[FileInfo]:
        """Detect files under ``path`` that match the configured patterns.

        Raises:
            FileNotFoundError: If path doesn't exist
        """
        root = Path(path)
        if not root.exists():
            raise FileNotFoundError(f"Path not found: {path}")

        if root.is_file():
            info = self._file_info(root, Path(root.name))
            return [info] if info else []

        files: List[FileInfo] = []
        try:
            for current, dirs, filenames in os.walk(root):
                current_path = Path(current)
                dirs[:] = sorted(
                    d for d in dirs
                    if d not in self.EXCLUDE_DIRS
                    and (current_path / d).resolve() not in self.skip_paths
                )
                for filename in sorted(filenames):
                    file_path = current_path / filename
                    relative_path = file_path.relative_to(root)
                    if not self._should_include_file(relative_path):
                        continue
                    info = self._file_info(file_path, relative_path)
                    if info:
                        files.append(info)
        except (OSError, PermissionError) as exc:
            self.logger.warning("Failed to walk %s: %s", root, exc)

        return files

    def load_files(self, path: str | os.PathLike) -> List[FileData]:
        """Detect and load matching text files, skipping unreadable ones."""
        files_data = []
        for file_info in self.detect_files(path):
            try:
                with open(file_info.path, 'r', encoding='utf-8') as f:
                    content = f.read()
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning("Failed to load %s: %s", file_info.path, e)
                continue
            files_data.append(FileData(
                path=file_info.path,
                relative_path=file_info.relative_path,
                content=content,
                size=len(content),
                extension=file_info.extension,
            ))
        return files_data

    def _should_include_file(self, relative_path: Path) -> bool:
        posix_path = relative_path.as_posix()
        if self.patterns and not matches_any(posix_path, self.patterns):
            return False
        if self.exclude_patterns and matches_any(posix_path, self.exclude_patterns):
            return False
        return True

    def _file_info(self, file_path: Path, relative_path: Path) -> FileInfo | None:
        try:
            stat_info = file_path.stat()
        except (OSError, PermissionError):
            # Skip files we can't access
            return None
        if self.max_file_size is not None and stat_info.st_size > self.max_file_size:
            return None
        return FileInfo(
            path=str(file_path.absolute()),
            relative_path=relative_path.as_posix(),
            size=stat_info.st_size,
            extension=file_path.suffix,
        )
