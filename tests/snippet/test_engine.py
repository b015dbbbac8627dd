import asyncio
import json
import threading

import pytest

from context_craft.errors import FilesystemError, SnippetNotFoundError
from context_craft.snippet import SnippetEngine, SnippetStorage, Variable, snippet_storage
from context_craft.snippet.engine import INSERT_SEPARATOR, combine_content, extension_for
from context_craft.snippet.snippet_storage import (
    EXAMPLE_FILE,
    METADATA_FILE,
    QUICK_INSERT_FILE,
    TEMPLATE_FILE,
)

HELLO_CODE = "function {{functionName}}({{name}}) { return {{name}}; }"


@pytest.fixture
def engine(tmp_path):
    storage = SnippetStorage(tmp_path / "templates" / "snippets")
    workdir = tmp_path / "project"
    workdir.mkdir()
    return SnippetEngine(storage, working_dir=workdir)


async def _save_hello(engine: SnippetEngine):
    return await engine.save(
        name="hello-world",
        description="Greeting function",
        code=HELLO_CODE,
        language="typescript",
        variables=[
            Variable(name="functionName", description="Function name", required=True),
            Variable(name="name", description="Who to greet", default_value="World"),
        ],
    )


@pytest.mark.asyncio
async def test_save_declared_variables_cover_all_placeholders(engine):
    snippet = await _save_hello(engine)

    assert snippet.variable_names() == ["functionName", "name"]
    assert snippet.template.placeholders == ["functionName", "name", "name"]
    assert snippet.usage.count == 0
    assert snippet.usage.last_used is None
    assert len(snippet.id) == 8

    directory = engine.storage.snippet_dir("hello-world")
    for filename in (METADATA_FILE, TEMPLATE_FILE, EXAMPLE_FILE, QUICK_INSERT_FILE):
        assert (directory / filename).is_file()

    metadata = json.loads((directory / METADATA_FILE).read_text(encoding="utf-8"))
    assert metadata["variables"][1]["defaultValue"] == "World"
    assert metadata["context"]["lineCount"] == 1
    assert metadata["context"]["size"] == len(HELLO_CODE)

    quick_insert = json.loads((directory / QUICK_INSERT_FILE).read_text(encoding="utf-8"))
    assert quick_insert["parameters"]["variables"] == {"functionName": "", "name": "World"}


@pytest.mark.asyncio
async def test_save_auto_detects_undeclared_placeholders(engine):
    snippet = await engine.save(
        name="logger",
        description="",
        code="const {{loggerName}} = createLogger('{{scope}}'); {{loggerName}}.info('ready');",
        variables=[Variable(name="scope", default_value="app")],
    )

    assert snippet.variable_names() == ["scope", "loggerName"]
    auto = snippet.variables[1]
    assert auto.required is True
    assert auto.description == "Auto-detected variable: loggerName"
    placeholders = set(snippet.template.placeholders)
    assert placeholders == set(snippet.variable_names())


@pytest.mark.asyncio
async def test_save_merges_user_and_detected_tags(engine):
    snippet = await engine.save(
        name="fetcher",
        description="",
        code="export async function fetchAll() { return await Promise.all([]); }",
        tags=["http", "async"],
    )

    assert snippet.tags[:2] == ["http", "async"]
    assert snippet.tags.count("async") == 1
    assert {"ts", "typed", "function", "module"} <= set(snippet.tags)


@pytest.mark.asyncio
async def test_resave_replaces_previous_version(engine):
    await _save_hello(engine)
    directory = engine.storage.snippet_dir("hello-world")
    (directory / "stale.txt").write_text("left over", encoding="utf-8")

    snippet = await engine.save(
        name="hello-world",
        description="Replacement",
        code="print('{{message}}')",
        language="python",
    )

    loaded = engine.storage.load("hello-world")
    assert loaded.id == snippet.id
    assert loaded.description == "Replacement"
    assert loaded.variable_names() == ["message"]
    assert engine.storage.read_template("hello-world") == "print('{{message}}')"
    assert not (directory / "stale.txt").exists()


@pytest.mark.asyncio
async def test_insert_with_defaults_creates_target(engine):
    await _save_hello(engine)

    result = await engine.insert("hello-world", variables={"functionName": "greet"})

    assert result.inserted
    assert result.operation == "created"
    assert result.file_path == engine.working_dir / "hello-world.ts"
    assert result.file_path.read_text(encoding="utf-8") == "function greet(World) { return World; }"
    assert result.variables == {"functionName": "greet", "name": "World"}

    stored = engine.storage.load("hello-world")
    assert stored.usage.count == 1
    assert stored.usage.last_used is not None


@pytest.mark.asyncio
async def test_insert_missing_required_variable_writes_nothing(engine):
    await _save_hello(engine)

    result = await engine.insert("hello-world")

    assert not result.inserted
    assert [variable.name for variable in result.missing_variables] == ["functionName"]
    assert not (engine.working_dir / "hello-world.ts").exists()
    assert engine.storage.load("hello-world").usage.count == 0


@pytest.mark.asyncio
async def test_insert_empty_value_counts_as_missing(engine):
    await _save_hello(engine)
    target = engine.working_dir / "existing.ts"
    target.write_text("keep me", encoding="utf-8")

    result = await engine.insert(
        "hello-world",
        variables={"functionName": ""},
        target_path="existing.ts",
        insert_mode="append",
    )

    assert [variable.name for variable in result.missing_variables] == ["functionName"]
    assert target.read_text(encoding="utf-8") == "keep me"


@pytest.mark.asyncio
async def test_append_twice_accumulates_renders(engine):
    await _save_hello(engine)

    first = await engine.insert(
        "hello-world",
        variables={"functionName": "one"},
        target_path="out/greet.ts",
        insert_mode="append",
    )
    second = await engine.insert(
        "hello-world",
        variables={"functionName": "two", "name": "Ada"},
        target_path="out/greet.ts",
        insert_mode="append",
    )

    assert first.operation == "created"
    assert second.operation == "appended to"
    expected = first.rendered + INSERT_SEPARATOR + second.rendered
    assert (engine.working_dir / "out" / "greet.ts").read_text(encoding="utf-8") == expected
    assert engine.storage.load("hello-world").usage.count == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "mode, operation, expected",
    [
        ("replace", "replaced", "NEW"),
        ("append", "appended to", "OLD" + INSERT_SEPARATOR + "NEW"),
        ("prepend", "prepended to", "NEW" + INSERT_SEPARATOR + "OLD"),
    ],
)
async def test_insert_modes_on_existing_target(engine, mode, operation, expected):
    await engine.save(name="plain", description="", code="{{value}}")
    target = engine.working_dir / "target.txt"
    target.write_text("OLD", encoding="utf-8")

    result = await engine.insert(
        "plain",
        variables={"value": "NEW"},
        target_path=str(target),
        insert_mode=mode,
    )

    assert result.operation == operation
    assert target.read_text(encoding="utf-8") == expected


@pytest.mark.asyncio
async def test_insert_unknown_snippet_raises(engine):
    with pytest.raises(SnippetNotFoundError, match="Snippet 'missing' not found"):
        await engine.insert("missing")


@pytest.mark.asyncio
async def test_concurrent_inserts_count_every_call(engine):
    await engine.save(name="line", description="", code="{{text}}")

    await asyncio.gather(
        *(
            engine.insert(
                "line",
                variables={"text": f"entry-{index}"},
                target_path="log.txt",
                insert_mode="append",
            )
            for index in range(5)
        )
    )

    content = (engine.working_dir / "log.txt").read_text(encoding="utf-8")
    assert sorted(content.split(INSERT_SEPARATOR)) == [f"entry-{index}" for index in range(5)]
    assert engine.storage.load("line").usage.count == 5


@pytest.mark.asyncio
async def test_list_filters_sorts_and_reports_total(engine):
    await engine.save(name="alpha", description="First helper", code="a", language="python", tags=["util"])
    await engine.save(name="beta", description="Second", code="bbbbbb", language="typescript", tags=["api"])
    await engine.save(name="gamma", description="Third helper", code="{{x}}", language="javascript")
    await engine.insert("gamma", variables={"x": "1"})
    await engine.insert("gamma", variables={"x": "2"})
    await engine.insert("beta")

    by_usage = await engine.list_snippets(sort_by="usage", limit=2)
    assert by_usage.total == 3
    assert by_usage.truncated
    counts = [snippet.usage.count for snippet in by_usage.snippets]
    assert counts == sorted(counts, reverse=True)
    assert by_usage.snippets[0].name == "gamma"

    by_name = await engine.list_snippets(sort_by="name")
    assert [snippet.name for snippet in by_name.snippets] == ["alpha", "beta", "gamma"]

    by_size = await engine.list_snippets(sort_by="size")
    assert by_size.snippets[0].name == "beta"

    searched = await engine.list_snippets(search="HELPER")
    assert {snippet.name for snippet in searched.snippets} == {"alpha", "gamma"}

    tagged = await engine.list_snippets(tags=["api", "util"], language="script")
    assert [snippet.name for snippet in tagged.snippets] == ["beta"]


@pytest.mark.asyncio
async def test_list_skips_invalid_metadata(engine):
    await engine.save(name="good", description="", code="ok")
    broken = engine.storage.root / "broken"
    broken.mkdir()
    (broken / METADATA_FILE).write_text("{not json", encoding="utf-8")

    listing = await engine.list_snippets()

    assert listing.total == 1
    assert listing.snippets[0].name == "good"
    assert listing.directories == {"good": "good"}


@pytest.mark.asyncio
async def test_list_without_repository_is_empty(engine):
    listing = await engine.list_snippets()

    assert listing.total == 0
    assert listing.snippets == []


def test_combine_content_without_existing_target():
    assert combine_content(None, "rendered", "append") == "rendered"


def test_extension_for_falls_back_to_txt():
    assert extension_for("React") == "tsx"
    assert extension_for("brainfuck") == "txt"
    assert extension_for(None) == "txt"


@pytest.mark.asyncio
async def test_insert_into_undecodable_target_raises_filesystem_error(engine):
    await engine.save(name="plain", description="", code="{{v}}")
    target = engine.working_dir / "latin1.txt"
    target.write_bytes(b"caf\xe9")

    with pytest.raises(FilesystemError, match="latin1.txt"):
        await engine.insert("plain", variables={"v": "x"}, target_path="latin1.txt", insert_mode="append")

    assert target.read_bytes() == b"caf\xe9"
    assert engine.storage.load("plain").usage.count == 0


@pytest.mark.asyncio
async def test_locks_are_released_after_inserts(engine):
    await engine.save(name="line", description="", code="{{text}}")

    for index in range(20):
        await engine.insert("line", variables={"text": "a"}, target_path=f"out/{index}.txt")
    await asyncio.gather(
        *(
            engine.insert("line", variables={"text": "b"}, target_path="out/shared.txt", insert_mode="append")
            for _ in range(5)
        )
    )

    assert len(engine._path_locks) == 0
    assert len(engine._snippet_locks) == 0


@pytest.mark.asyncio
async def test_resave_racing_insert_stays_consistent(engine):
    await engine.save(name="race", description="", code="old-{{v}}")

    await asyncio.gather(
        engine.save(name="race", description="", code="new-{{v}}"),
        engine.insert("race", variables={"v": "x"}, target_path="race.txt"),
    )

    stored = engine.storage.load("race")
    assert stored.template.code == "new-{{v}}"
    assert engine.storage.read_template("race") == "new-{{v}}"
    content = (engine.working_dir / "race.txt").read_text(encoding="utf-8")
    # insert first: the re-save resets usage; save first: the insert renders the new template
    assert (content, stored.usage.count) in {("old-x", 0), ("new-x", 1)}


@pytest.mark.asyncio
async def test_list_never_sees_half_saved_snippet(engine, monkeypatch):
    reached = threading.Event()
    proceed = threading.Event()
    write_json = snippet_storage._write_json

    def gated_write_json(path, payload):
        if path.name == METADATA_FILE:
            reached.set()
            proceed.wait(5)
        write_json(path, payload)

    monkeypatch.setattr(snippet_storage, "_write_json", gated_write_json)

    saving = asyncio.create_task(engine.save(name="draft", description="", code="{{x}}"))
    assert await asyncio.to_thread(reached.wait, 5)

    directory = engine.storage.snippet_dir("draft")
    assert (directory / TEMPLATE_FILE).is_file()
    in_flight = await engine.list_snippets()
    assert in_flight.total == 0

    proceed.set()
    await saving

    done = await engine.list_snippets()
    assert done.total == 1
    assert done.snippets[0].template.code == "{{x}}"
    assert done.snippets[0].variable_names() == ["x"]
