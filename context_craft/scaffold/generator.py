"""Render a template directory tree into a new project or component skeleton."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

from jinja2 import Environment, TemplateError

from ..errors import ContextCraftError, FilesystemError, TemplateDirectoryNotFoundError
from ..snippet.placeholders import render_placeholders

logger = logging.getLogger("context_craft")

BUILTIN_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


@dataclass(frozen=True, slots=True)
class GeneratedFile:
    path: Path
    content: str | None

    @property
    def is_binary(self) -> bool:
        return self.content is None


def build_context(name: str, *, lang: str = "ts", features: Sequence[str] = ()) -> Dict[str, Any]:
    """Derive the rendering context for ``name`` in each supported case."""
    kebab = re.sub(r"([A-Z])", r"-\1", name).lower()
    return {
        "name": name,
        "PascalName": name[:1].upper() + name[1:],
        "kebabName": re.sub(r"^-", "", kebab),
        "lang": lang,
        "features": list(features),
    }


class ScaffoldGenerator:
    """Copy a template tree to an output directory, rendering as it goes.

    File contents are Jinja2 templates. Path segments only support flat
    ``{{name}}`` placeholders; unknown ones stay literal. Existing output
    files are overwritten silently.
    """

    def __init__(
        self,
        template_dirs: Sequence[Path],
        output_root: Path,
    ) -> None:
        self.template_dirs = [Path(path) for path in template_dirs]
        self.output_root = Path(output_root)
        self._env = Environment(keep_trailing_newline=True, autoescape=False)

    def find_template(self, template_type: str) -> Path:
        for base in self.template_dirs:
            candidate = base / template_type
            if candidate.is_dir():
                return candidate
        raise TemplateDirectoryNotFoundError(template_type)

    def available_templates(self) -> List[str]:
        names: set[str] = set()
        for base in self.template_dirs:
            if base.is_dir():
                names.update(child.name for child in base.iterdir() if child.is_dir())
        return sorted(names)

    def generate(self, template_type: str, name: str, context: Dict[str, Any]) -> List[GeneratedFile]:
        template_dir = self.find_template(template_type)
        output_dir = self.output_root / name
        path_values = {key: value for key, value in context.items() if isinstance(value, str) and value}

        logger.info("Rendering %s template from %s into %s", template_type, template_dir, output_dir)

        generated: List[GeneratedFile] = []
        for source in sorted(path for path in template_dir.rglob("*") if path.is_file()):
            relative = source.relative_to(template_dir).as_posix()
            destination = output_dir / render_placeholders(relative, path_values)
            generated.append(self._render_file(source, destination, context))

        return generated

    def _render_file(self, source: Path, destination: Path, context: Dict[str, Any]) -> GeneratedFile:
        try:
            text = source.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            text = None
        except OSError as exc:
            raise FilesystemError(f"Failed to read template file {source}: {exc}") from exc

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            if text is None:
                shutil.copyfile(source, destination)
                return GeneratedFile(path=destination, content=None)

            try:
                rendered = self._env.from_string(text).render(**context)
            except TemplateError as exc:
                raise ContextCraftError(f"Failed to render template file {source}: {exc}") from exc
            destination.write_text(rendered, encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(f"Failed to write {destination}: {exc}") from exc

        return GeneratedFile(path=destination, content=rendered)


__all__ = ["ScaffoldGenerator", "GeneratedFile", "build_context", "BUILTIN_TEMPLATES_DIR"]
