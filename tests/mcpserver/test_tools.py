import mcp.types as types
import pytest

from context_craft.config import ServerSettings
from context_craft.errors import ContextCraftError, SchemaValidationError
from context_craft.mcpserver import tools as tools_module
from context_craft.mcpserver.context import ContextAnnotator, SessionStore
from context_craft.mcpserver.dispatcher import ToolDispatcher
from context_craft.mcpserver.server import ServiceContext, create_server, to_call_tool_result
from context_craft.mcpserver.tools import ContextCraftTools
from context_craft.tools.run_tests import TestRun, TestSummary

HELLO_ARGS = {
    "name": "hello-world",
    "description": "Greeting function",
    "code": "function {{functionName}}({{name}}) { return {{name}}; }",
    "variables": [
        {"name": "functionName", "required": True},
        {"name": "name", "defaultValue": "World"},
    ],
}


@pytest.fixture
def settings(tmp_path):
    return ServerSettings.for_root(tmp_path)


@pytest.fixture
def dispatcher(settings):
    return ToolDispatcher(ContextCraftTools(settings), ContextAnnotator(SessionStore(10)))


def test_all_tools_are_registered(dispatcher):
    listing = {entry["name"]: entry for entry in dispatcher.list_tools()}

    assert list(listing) == [
        "scaffold",
        "codeSearch",
        "lintFix",
        "runTests",
        "saveContextTemplate",
        "saveSnippet",
        "insertSnippet",
        "listSnippets",
    ]
    insert_props = listing["insertSnippet"]["inputSchema"]["properties"]
    assert {"name", "variables", "targetPath", "insertMode", "position"} <= set(insert_props)
    assert insert_props["insertMode"]["enum"] == ["replace", "append", "prepend"]


@pytest.mark.asyncio
async def test_snippet_round_trip_through_dispatcher(dispatcher, settings):
    saved = await dispatcher.dispatch("saveSnippet", HELLO_ARGS)
    assert saved["name"] == "hello-world"
    assert [variable["name"] for variable in saved["variables"]] == ["functionName", "name"]

    missing = await dispatcher.dispatch("insertSnippet", {"name": "hello-world"})
    assert missing["missingVariables"] == ["functionName"]
    assert "functionName" in missing["content"][0]["text"]

    inserted = await dispatcher.dispatch(
        "insertSnippet",
        {"name": "hello-world", "variables": {"functionName": "greet"}, "targetPath": "src/greet.ts"},
    )
    target = settings.project_root / "src" / "greet.ts"
    assert inserted["filePath"] == str(target)
    assert inserted["operation"] == "created"
    assert inserted["lineCount"] == 1
    assert target.read_text(encoding="utf-8") == "function greet(World) { return World; }"

    listed = await dispatcher.dispatch("listSnippets", {"sortBy": "usage"})
    assert listed["total"] == 1
    entry = listed["snippets"][0]
    assert entry["dir"] == "hello-world"
    assert entry["usage"]["count"] == 1
    assert entry["preview"] == HELLO_ARGS["code"]


@pytest.mark.asyncio
async def test_save_snippet_rejects_path_like_names(dispatcher):
    with pytest.raises(SchemaValidationError, match="single path segment"):
        await dispatcher.dispatch("saveSnippet", {**HELLO_ARGS, "name": "../escape"})


@pytest.mark.asyncio
async def test_list_snippets_on_empty_repository(dispatcher):
    result = await dispatcher.dispatch("listSnippets", {})

    assert result["total"] == 0
    assert result["snippets"] == []
    assert "No snippets saved yet" in result["content"][0]["text"]


@pytest.mark.asyncio
async def test_scaffold_reports_files_and_thinking(dispatcher, settings):
    result = await dispatcher.dispatch("scaffold", {"type": "web-api", "name": "orders"})

    paths = [entry["path"] for entry in result["files"]]
    assert "generated/orders/src/index.ts" in paths
    assert (settings.output_dir / "orders" / "package.json").is_file()
    text = result["content"][0]["text"]
    assert "Thinking process:" in text
    assert "Executing scaffold" in text


@pytest.mark.asyncio
async def test_code_search_returns_matches(dispatcher, settings):
    source = settings.project_root / "src" / "app.ts"
    source.parent.mkdir(parents=True)
    source.write_text("const value = 1;\nexport const Needle = value;\n", encoding="utf-8")

    result = await dispatcher.dispatch("codeSearch", {"query": "needle", "fileTypes": [".ts"]})

    assert result["matches"][0]["file"] == "src/app.ts"
    assert result["matches"][0]["matches"] == [{"line": 2, "content": "export const Needle = value;"}]


@pytest.mark.asyncio
async def test_code_search_missing_path_fails(dispatcher):
    with pytest.raises(ContextCraftError, match="Search failed"):
        await dispatcher.dispatch("codeSearch", {"query": "x", "path": "does-not-exist"})


@pytest.mark.asyncio
async def test_run_tests_reports_summary(dispatcher, monkeypatch):
    calls = []

    def fake_run(cwd, **kwargs):
        calls.append(kwargs)
        return TestRun(exit_code=1, summary=TestSummary(passed=3, failed=1, total=4), stderr="1 failing")

    monkeypatch.setattr(tools_module, "run_test_command", fake_run)

    result = await dispatcher.dispatch("runTests", {"testCommand": "npx vitest run", "coverage": True})

    assert calls[0]["test_command"] == "npx vitest run"
    assert calls[0]["coverage"] is True
    assert (result["exitCode"], result["passed"], result["failed"], result["total"]) == (1, 3, 1, 4)
    assert result["coverage"] is None


@pytest.mark.asyncio
async def test_save_context_template_uses_metadata(dispatcher, settings):
    (settings.project_root / "package.json").write_text('{"name": "demo"}', encoding="utf-8")

    result = await dispatcher.dispatch(
        "saveContextTemplate",
        {"name": "starter", "description": "Demo", "metadata": {"techStack": ["Fastify"]}},
    )

    assert result["templateName"] == "starter"
    assert result["files"] == ["package.json"]
    assert (settings.saved_templates_dir / "starter" / "template.json").is_file()
    assert "Fastify" in result["content"][0]["text"]


def test_to_call_tool_result_splits_content():
    blocks, structured = to_call_tool_result(
        {"content": [{"type": "text", "text": "done"}], "total": 2, "items": ["a"]}
    )

    assert [block.text for block in blocks] == ["done"]
    assert structured == {"total": 2, "items": ["a"]}


def test_service_context_builds_dispatcher_once(settings):
    services = ServiceContext(settings)

    first = services.dispatcher()

    assert first is services.dispatcher()
    assert len(first.list_tools()) == 8


@pytest.mark.asyncio
async def test_create_server_registers_list_handler(settings):
    server = create_server(settings)

    handler = server.request_handlers[types.ListToolsRequest]
    response = await handler(None)

    tools = response.root.tools
    assert len(tools) == 8
    save_tool = next(item for item in tools if item.name == "saveSnippet")
    assert "code" in save_tool.inputSchema["properties"]
