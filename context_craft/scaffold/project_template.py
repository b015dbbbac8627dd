"""Capture the current project as a reusable saved template."""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

from ..errors import FilesystemError
from ..snippet.model import utc_now
from ..utils.file_loader import FileLoader

logger = logging.getLogger("context_craft")

DEFAULT_INCLUDE_PATTERNS: Sequence[str] = (
    "package.json",
    "tsconfig.json",
    "**/*.config.*",
    ".eslintrc.*",
    ".prettierrc.*",
    "src/**/*",
    "tests/**/*",
    "docs/**/*",
)
DEFAULT_EXCLUDE_PATTERNS: Sequence[str] = (
    "node_modules/**",
    "dist/**",
    ".git/**",
    "*.log",
    "coverage/**",
)

PACKAGE_TECH = (
    ("react", "React"),
    ("vue", "Vue"),
    ("fastify", "Fastify"),
    ("express", "Express"),
    ("typescript", "TypeScript"),
    ("vitest", "Vitest"),
    ("jest", "Jest"),
)
MARKER_FILES = (
    ("tsconfig.json", "TypeScript"),
    ("vite.config.ts", "Vite"),
    ("webpack.config.js", "Webpack"),
    ("tailwind.config.js", "Tailwind"),
    (".eslintrc.js", "ESLint"),
    ("prettier.config.js", "Prettier"),
    ("pyproject.toml", "Python"),
    ("requirements.txt", "Python"),
)
FEATURE_MARKERS = (
    ("tests", "Testing"),
    ("src", "Modular Structure"),
    ("docker-compose.yml", "Docker Support"),
    (".github/workflows", "CI/CD"),
    ("docs", "Documentation"),
)
STRUCTURE_SKIP = {"node_modules", "dist"}

TEMPLATE_FILE = "template.json"
STRUCTURE_FILE = "structure.json"


@dataclass(slots=True)
class CapturedTemplate:
    name: str
    directory: Path
    metadata: Dict[str, Any]
    structure: Dict[str, Any]
    files: List[str] = field(default_factory=list)

    @property
    def tech_stack(self) -> List[str]:
        return list(self.metadata.get("metadata", {}).get("techStack", []))

    @property
    def features(self) -> List[str]:
        return list(self.metadata.get("metadata", {}).get("features", []))


class ProjectTemplateCapture:
    """Snapshot a project tree into ``<saved_dir>/<name>/``."""

    def __init__(self, project_root: Path, saved_dir: Path) -> None:
        self.project_root = Path(project_root)
        self.saved_dir = Path(saved_dir)

    def capture(
        self,
        name: str,
        description: str,
        *,
        include_patterns: Sequence[str] = DEFAULT_INCLUDE_PATTERNS,
        exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
        metadata: Dict[str, Any] | None = None,
    ) -> CapturedTemplate:
        target_dir = self.saved_dir / name
        loader = FileLoader(
            patterns=include_patterns,
            exclude_patterns=exclude_patterns,
            max_file_size=0,
            skip_paths=[self.saved_dir],
        )
        files = loader.load_files(self.project_root)
        structure = self.generate_structure()

        supplied = dict(metadata or {})
        template_meta = {
            "name": name,
            "description": description,
            "createdAt": utc_now().isoformat(),
            "projectInfo": self.collect_project_info(files, exclude_patterns, structure),
            "metadata": {
                **supplied,
                "techStack": supplied.get("techStack") or self.detect_tech_stack(),
                "features": supplied.get("features") or self.detect_features(),
            },
        }

        saved_files: List[str] = []
        try:
            if target_dir.exists():
                shutil.rmtree(target_dir)
            target_dir.mkdir(parents=True, exist_ok=True)
            _write_json(target_dir / TEMPLATE_FILE, template_meta)

            for file_data in files:
                destination = target_dir / file_data.relative_path
                try:
                    destination.parent.mkdir(parents=True, exist_ok=True)
                    destination.write_text(file_data.content, encoding="utf-8")
                except OSError as exc:
                    logger.warning("Skipping %s: %s", file_data.relative_path, exc)
                    continue
                saved_files.append(file_data.relative_path)

            _write_json(target_dir / STRUCTURE_FILE, structure)
        except OSError as exc:
            raise FilesystemError(f"Failed to save template '{name}': {exc}") from exc

        logger.info("Saved project template %s with %d files", name, len(saved_files))
        return CapturedTemplate(
            name=name,
            directory=target_dir,
            metadata=template_meta,
            structure=structure,
            files=saved_files,
        )

    def collect_project_info(
        self,
        included_files: Sequence[Any],
        exclude_patterns: Sequence[str],
        structure: Dict[str, Any],
    ) -> Dict[str, Any]:
        all_files = FileLoader(
            exclude_patterns=exclude_patterns,
            max_file_size=0,
            skip_paths=[self.saved_dir],
        ).detect_files(self.project_root)
        config_files = [
            info.relative_path
            for info in all_files
            if info.extension in {".json", ".yml", ".yaml", ".js", ".ts", ".toml"}
            and ("config" in info.relative_path or info.relative_path.startswith("."))
        ]
        return {
            "package": self._read_package_json() or {},
            "configFiles": config_files[:10],
            "structure": structure,
            "stats": {
                "totalFiles": len(all_files),
                "totalLines": sum(len(data.content.split("\n")) for data in included_files),
            },
        }

    def detect_tech_stack(self) -> List[str]:
        tech_stack: List[str] = []
        package = self._read_package_json()
        if package:
            dependencies = {
                **(package.get("dependencies") or {}),
                **(package.get("devDependencies") or {}),
            }
            tech_stack.extend(tech for key, tech in PACKAGE_TECH if key in dependencies)

        tech_stack.extend(
            tech for marker, tech in MARKER_FILES if (self.project_root / marker).exists()
        )
        return list(dict.fromkeys(tech_stack))

    def detect_features(self) -> List[str]:
        return [
            feature for marker, feature in FEATURE_MARKERS if (self.project_root / marker).exists()
        ]

    def generate_structure(self) -> Dict[str, Any]:
        structure: Dict[str, Any] = {"name": "project", "type": "directory", "children": []}
        self._build_tree(self.project_root, structure)
        return structure

    def _build_tree(self, directory: Path, tree: Dict[str, Any]) -> None:
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except OSError as exc:
            logger.warning("Cannot list %s: %s", directory, exc)
            return

        for entry in entries:
            if entry.name.startswith(".") or entry.name in STRUCTURE_SKIP:
                continue
            if entry.is_dir():
                if entry.resolve() == self.saved_dir.resolve():
                    continue
                child: Dict[str, Any] = {"name": entry.name, "type": "directory", "children": []}
                tree["children"].append(child)
                self._build_tree(entry, child)
            else:
                tree["children"].append({
                    "name": entry.name,
                    "type": "file",
                    "path": entry.relative_to(self.project_root).as_posix(),
                })

    def _read_package_json(self) -> Dict[str, Any] | None:
        package_path = self.project_root / "package.json"
        if not package_path.is_file():
            return None
        try:
            with open(package_path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable package.json: %s", exc)
            return None
        return data if isinstance(data, dict) else None


def _write_json(path: Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")


__all__ = [
    "ProjectTemplateCapture",
    "CapturedTemplate",
    "DEFAULT_INCLUDE_PATTERNS",
    "DEFAULT_EXCLUDE_PATTERNS",
]
