"""Scaffold generation and project template capture."""

from .generator import BUILTIN_TEMPLATES_DIR, GeneratedFile, ScaffoldGenerator, build_context
from .project_template import CapturedTemplate, ProjectTemplateCapture

__all__ = [
    "ScaffoldGenerator",
    "GeneratedFile",
    "build_context",
    "BUILTIN_TEMPLATES_DIR",
    "ProjectTemplateCapture",
    "CapturedTemplate",
]
