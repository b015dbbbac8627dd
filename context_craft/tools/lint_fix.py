"""ESLint wrapper: runs the linter and reparses its JSON report."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

logger = logging.getLogger("context_craft")

DEFAULT_TARGETS: Sequence[str] = ("src/**/*.{js,ts,jsx,tsx}",)


@dataclass(slots=True)
class LintReport:
    fixed_files: List[str] = field(default_factory=list)
    remaining_issues: List[Dict[str, Any]] = field(default_factory=list)
    error: str | None = None


def build_eslint_command(files: Sequence[str] | None, config: str, fix: bool) -> List[str]:
    cmd = ["npx", "eslint", *(files or DEFAULT_TARGETS)]
    if fix:
        cmd.append("--fix")
    cmd.extend(["--format", "json", "--config", config])
    return cmd


def parse_eslint_output(stdout: str) -> LintReport:
    try:
        results = json.loads(stdout or "[]")
    except json.JSONDecodeError:
        logger.warning("ESLint produced non-JSON output")
        results = []
    if not isinstance(results, list):
        results = []

    report = LintReport()
    for entry in results:
        if not isinstance(entry, dict):
            continue
        messages = entry.get("messages") or []
        if messages:
            report.remaining_issues.append(entry)
        else:
            report.fixed_files.append(entry.get("filePath", ""))
    return report


def run_lint(
    cwd: Path,
    *,
    files: Sequence[str] | None = None,
    config: str = ".eslintrc.js",
    fix: bool = True,
) -> LintReport:
    cmd = build_eslint_command(files, config, fix)
    logger.debug("Running %s in %s", " ".join(cmd), cwd)
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        logger.error("Failed to launch eslint: %s", exc)
        return LintReport(error=str(exc))

    stdout = result.stdout.decode("utf-8", errors="ignore")
    if result.returncode not in (0, 1):
        stderr = result.stderr.decode("utf-8", errors="ignore")
        logger.warning("eslint exited with %d: %s", result.returncode, stderr.strip())
    return parse_eslint_output(stdout)


__all__ = ["LintReport", "run_lint", "parse_eslint_output", "build_eslint_command"]
