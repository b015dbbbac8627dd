"""Boundary wrappers around external developer tooling."""

from .code_search import FileMatch, search_code
from .lint_fix import LintReport, run_lint
from .run_tests import TestRun, TestSummary, parse_test_output, run_test_command

__all__ = [
    "search_code",
    "FileMatch",
    "run_lint",
    "LintReport",
    "run_test_command",
    "parse_test_output",
    "TestRun",
    "TestSummary",
]
