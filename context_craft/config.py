"""Runtime configuration for the context-craft server."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger("context_craft")


@dataclass(slots=True)
class ServerSettings:
    """Filesystem locations and runtime knobs shared by every tool."""

    project_root: Path
    templates_dir: Path
    output_dir: Path
    log_level: str = "INFO"
    session_limit: int = 100

    @property
    def snippets_dir(self) -> Path:
        return self.templates_dir / "snippets"

    @property
    def saved_templates_dir(self) -> Path:
        return self.templates_dir / "saved"

    @classmethod
    def for_root(cls, root: str | os.PathLike[str], **overrides) -> "ServerSettings":
        """Build settings with every directory derived from ``root``."""
        project_root = Path(root).resolve()
        values = {
            "project_root": project_root,
            "templates_dir": project_root / "templates",
            "output_dir": project_root / "generated",
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, *, root: str | None = None) -> "ServerSettings":
        def _int_env(name: str, default: int) -> int:
            raw = os.getenv(name)
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError:
                logger.warning("Invalid integer for %s: %s", name, raw)
                return default

        def _path_env(name: str, default: Path) -> Path:
            raw = os.getenv(name)
            if not raw:
                return default
            candidate = Path(raw).expanduser()
            if not candidate.is_absolute():
                candidate = project_root / candidate
            return candidate.resolve()

        project_root = Path(root or os.getenv("CONTEXT_CRAFT_ROOT") or os.getcwd()).resolve()

        return cls(
            project_root=project_root,
            templates_dir=_path_env("CONTEXT_CRAFT_TEMPLATES_DIR", project_root / "templates"),
            output_dir=_path_env("CONTEXT_CRAFT_OUTPUT_DIR", project_root / "generated"),
            log_level=os.getenv("CONTEXT_CRAFT_LOG_LEVEL", "INFO").upper(),
            session_limit=_int_env("CONTEXT_CRAFT_SESSION_LIMIT", 100),
        )

    def resolve(self, path: str | os.PathLike[str]) -> Path:
        """Resolve ``path`` against the project root unless it is absolute."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        return candidate

    def relative(self, path: Path) -> str:
        """Render ``path`` relative to the project root when it lives inside it."""
        try:
            return path.resolve().relative_to(self.project_root).as_posix()
        except ValueError:
            return str(path)


__all__ = ["ServerSettings"]
