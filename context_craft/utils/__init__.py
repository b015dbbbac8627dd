"""Shared utility modules for context-craft."""

from .file_loader import FileData, FileInfo, FileLoader, glob_to_regex, matches_any

__all__ = [
    "FileLoader",
    "FileInfo",
    "FileData",
    "glob_to_regex",
    "matches_any",
]
