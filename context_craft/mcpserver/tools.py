"""The context-craft tool set: scaffolding, snippets, project templates and tooling wrappers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from ..config import ServerSettings
from ..errors import ContextCraftError
from ..scaffold import BUILTIN_TEMPLATES_DIR, ProjectTemplateCapture, ScaffoldGenerator, build_context
from ..snippet import SnippetEngine, SnippetStorage
from ..tools import run_lint, run_test_command, search_code
from .context import ToolContext
from .model import (
    CodeSearchInput,
    InsertSnippetInput,
    LintFixInput,
    ListSnippetsInput,
    RunTestsInput,
    SaveContextTemplateInput,
    SaveSnippetInput,
    ScaffoldInput,
)
from .registry import BaseTool, ToolResult, text_result, tool

logger = logging.getLogger("context_craft")

PREVIEW_LENGTH = 200


class ContextCraftTools(BaseTool):
    """Every tool served by the context-craft MCP server."""

    def __init__(
        self,
        settings: ServerSettings,
        *,
        engine: SnippetEngine | None = None,
        generator: ScaffoldGenerator | None = None,
        capture: ProjectTemplateCapture | None = None,
    ) -> None:
        self.settings = settings
        self.engine = engine or SnippetEngine(
            SnippetStorage(settings.snippets_dir),
            working_dir=settings.project_root,
        )
        self.generator = generator or ScaffoldGenerator(
            [settings.templates_dir, BUILTIN_TEMPLATES_DIR],
            settings.output_dir,
        )
        self.capture = capture or ProjectTemplateCapture(
            settings.project_root,
            settings.saved_templates_dir,
        )
        super().__init__()

    @tool(
        name="scaffold",
        description="Generate code scaffolding for a web API, microservice, frontend component or CLI tool",
    )
    async def scaffold(self, params: ScaffoldInput, context: ToolContext) -> ToolResult:
        render_context = build_context(params.name, lang=params.lang, features=params.features)
        generated = await asyncio.to_thread(
            self.generator.generate, params.type, params.name, render_context
        )
        files = [
            {"path": self.settings.relative(item.path), "content": item.content}
            for item in generated
        ]

        lines = [f"Generated {params.type} scaffolding for '{params.name}'", "", "Thinking process:"]
        lines.extend(f"  {line}" for line in context.summary_lines())
        lines.append("")
        lines.append(f"Files ({len(files)}):")
        lines.extend(f"  - {entry['path']}" for entry in files)
        return text_result("\n".join(lines), files=files, sessionId=context.session_id)

    @tool(
        name="codeSearch",
        description="Search the codebase for a keyword and return matching lines with file previews",
    )
    async def code_search(self, params: CodeSearchInput, context: ToolContext) -> ToolResult:
        root = self.settings.resolve(params.path)
        try:
            matches = await asyncio.to_thread(
                search_code,
                params.query,
                root,
                file_types=params.file_types,
                max_results=params.max_results,
            )
        except (FileNotFoundError, NotADirectoryError) as exc:
            raise ContextCraftError(f"Search failed: {exc}") from exc

        if not matches:
            return text_result(f"No matches found for '{params.query}'", matches=[])

        lines = [f"Found {len(matches)} files matching '{params.query}':", ""]
        for match in matches:
            lines.append(f"{match.file}:")
            lines.extend(f"  {line.line}: {line.content}" for line in match.matches)
        return text_result("\n".join(lines), matches=[match.to_dict() for match in matches])

    @tool(
        name="lintFix",
        description="Run ESLint over the project, optionally applying automatic fixes",
    )
    async def lint_fix(self, params: LintFixInput, context: ToolContext) -> ToolResult:
        report = await asyncio.to_thread(
            run_lint,
            self.settings.project_root,
            files=params.files,
            config=params.config,
            fix=params.fix,
        )
        if report.error:
            return text_result(f"Lint failed: {report.error}", fixedFiles=[], remainingIssues=[])

        issue_count = sum(len(entry.get("messages") or []) for entry in report.remaining_issues)
        text = (
            f"Lint complete: {len(report.fixed_files)} clean files, "
            f"{issue_count} remaining issues in {len(report.remaining_issues)} files"
        )
        return text_result(
            text,
            fixedFiles=report.fixed_files,
            remainingIssues=report.remaining_issues,
        )

    @tool(
        name="runTests",
        description="Run the project's test command and summarize passed and failed tests",
    )
    async def run_tests(self, params: RunTestsInput, context: ToolContext) -> ToolResult:
        run = await asyncio.to_thread(
            run_test_command,
            self.settings.project_root,
            test_command=params.test_command,
            test_files=params.test_files,
            coverage=params.coverage,
            watch=params.watch,
        )
        summary = run.summary
        status = "passed" if run.exit_code == 0 else "failed"
        lines = [
            f"Tests {status} (exit code {run.exit_code})",
            f"Passed: {summary.passed}, Failed: {summary.failed}, Total: {summary.total}",
        ]
        if summary.coverage:
            lines.append(f"Coverage: {summary.coverage}")
        if run.exit_code != 0 and run.stderr.strip():
            lines.extend(["", run.stderr.strip()])
        return text_result(
            "\n".join(lines),
            exitCode=run.exit_code,
            passed=summary.passed,
            failed=summary.failed,
            total=summary.total,
            coverage=summary.coverage,
        )

    @tool(
        name="saveContextTemplate",
        description="Save the current project's configuration and structure as a reusable template",
    )
    async def save_context_template(
        self, params: SaveContextTemplateInput, context: ToolContext
    ) -> ToolResult:
        metadata = (
            params.metadata.model_dump(by_alias=True, exclude_none=True)
            if params.metadata
            else None
        )
        captured = await asyncio.to_thread(
            self.capture.capture,
            params.name,
            params.description,
            include_patterns=params.include_patterns,
            exclude_patterns=params.exclude_patterns,
            metadata=metadata,
        )
        lines = [
            f"Saved project template '{captured.name}'",
            f"Location: {self.settings.relative(captured.directory)}",
            f"Files: {len(captured.files)}",
            f"Tech stack: {', '.join(captured.tech_stack) or 'unknown'}",
            f"Features: {', '.join(captured.features) or 'none'}",
        ]
        return text_result(
            "\n".join(lines),
            templateName=captured.name,
            files=captured.files,
            structure=captured.structure,
        )

    @tool(
        name="saveSnippet",
        description="Save a code snippet as a reusable template with {{placeholder}} variables",
    )
    async def save_snippet(self, params: SaveSnippetInput, context: ToolContext) -> ToolResult:
        snippet = await self.engine.save(
            name=params.name,
            description=params.description,
            code=params.code,
            language=params.language,
            tags=params.tags,
            variables=params.variables,
            context=params.context,
        )
        variables = [variable.to_document() for variable in snippet.variables]
        lines = [
            f"Saved snippet '{snippet.name}' ({snippet.id})",
            f"Language: {snippet.language}",
            f"Tags: {', '.join(snippet.tags) or 'none'}",
            f"Variables: {', '.join(snippet.variable_names()) or 'none'}",
        ]
        return text_result(
            "\n".join(lines),
            templateId=snippet.id,
            name=snippet.name,
            variables=variables,
            tags=snippet.tags,
        )

    @tool(
        name="insertSnippet",
        description="Render a saved snippet with variables and write it into a file",
    )
    async def insert_snippet(self, params: InsertSnippetInput, context: ToolContext) -> ToolResult:
        result = await self.engine.insert(
            params.name,
            variables=params.variables,
            target_path=params.target_path,
            insert_mode=params.insert_mode,
            position=params.position.model_dump(exclude_none=True) if params.position else None,
        )

        if result.missing_variables:
            missing = [variable.name for variable in result.missing_variables]
            lines = [f"Missing required variables for snippet '{params.name}':"]
            lines.extend(
                f"  - {variable.name}: {variable.description}" if variable.description else f"  - {variable.name}"
                for variable in result.missing_variables
            )
            return text_result("\n".join(lines), missingVariables=missing)

        file_path = self.settings.relative(result.file_path)
        lines = [
            f"Snippet '{params.name}' {result.operation} {file_path}",
            f"Lines: {result.line_count}",
            f"Variables used: {', '.join(params.variables) or 'defaults only'}",
        ]
        return text_result(
            "\n".join(lines),
            filePath=str(result.file_path),
            lineCount=result.line_count,
            variables=result.variables,
            operation=result.operation,
        )

    @tool(
        name="listSnippets",
        description="List saved snippets filtered by tags, language or search text",
    )
    async def list_snippets(self, params: ListSnippetsInput, context: ToolContext) -> ToolResult:
        listing = await self.engine.list_snippets(
            tags=params.tags,
            language=params.language,
            search=params.search,
            limit=params.limit,
            sort_by=params.sort_by,
        )

        snippets: List[Dict[str, Any]] = []
        for snippet in listing.snippets:
            document = snippet.to_document()
            document["dir"] = listing.directories.get(snippet.name, snippet.name)
            document["preview"] = _preview(snippet.template.code)
            snippets.append(document)

        if not snippets:
            if not self.engine.storage.root.is_dir():
                text = "No snippets saved yet. Use saveSnippet to create your first snippet."
            else:
                text = f"No snippets found with filters: {_describe_filters(params)}"
            return text_result(text, total=listing.total, snippets=[])

        lines = [f"Showing {len(snippets)} of {listing.total} snippets (sorted by {params.sort_by}):", ""]
        for snippet in listing.snippets:
            lines.append(
                f"- {snippet.name} [{snippet.language}] used {snippet.usage.count}x"
                f"{': ' + snippet.description if snippet.description else ''}"
            )
            if snippet.tags:
                lines.append(f"    tags: {', '.join(snippet.tags)}")
        return text_result("\n".join(lines), total=listing.total, snippets=snippets)


def _preview(code: str) -> str:
    if len(code) <= PREVIEW_LENGTH:
        return code
    return code[:PREVIEW_LENGTH] + "..."


def _describe_filters(params: ListSnippetsInput) -> str:
    filters = params.model_dump(
        by_alias=True,
        exclude_none=True,
        include={"tags", "language", "search"},
    )
    return ", ".join(f"{key}={value}" for key, value in filters.items()) or "none"


__all__ = ["ContextCraftTools"]
