import pytest

from conftest import FakeGenerator, FakeVersionControl, make_changes
from core.formatter.jinja_formatter import Jinja2Formatter
from core.pipeline import ChangeProcessingPipeline
from server.dispatcher import NO_CHANGES, RequestDispatcher
from server.protocol import Request
from utils.errors import ProviderError

REPO = "/work/repo"


def build_dispatcher(config, vcs, generator=None):
    pipeline = ChangeProcessingPipeline(vcs, generator or FakeGenerator(), config)
    return RequestDispatcher(config, pipeline, vcs, Jinja2Formatter())


def tool_call(name, arguments=None, request_id="1"):
    params = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return Request(id=request_id, method="tools/call", params=params)


@pytest.fixture
def dispatcher(config, fake_vcs):
    return build_dispatcher(config, fake_vcs)


@pytest.mark.asyncio
async def test_initialize(dispatcher, config):
    response = await dispatcher.dispatch(Request(id=1, method="initialize"))

    assert response.id == 1
    assert response.error is None
    assert response.result["protocolVersion"] == config.server.protocol_version
    assert response.result["capabilities"] == {"tools": {}}
    assert response.result["serverInfo"]["name"] == "aicommit-server"


@pytest.mark.asyncio
async def test_tools_list(dispatcher):
    response = await dispatcher.dispatch(Request(id="t", method="tools/list"))

    tools = {tool["name"]: tool for tool in response.result["tools"]}
    assert set(tools) == {"git_auto_commit", "git_show_diff"}
    schema = tools["git_auto_commit"]["inputSchema"]
    assert schema["required"] == ["repository_path"]
    assert schema["properties"]["model"]["default"] == "llama2"
    assert schema["properties"]["commit_individually"]["default"] is True


@pytest.mark.asyncio
async def test_unknown_method(dispatcher):
    response = await dispatcher.dispatch(Request(id="x", method="resources/list"))

    assert response.result is None
    assert response.error.code == -32601
    assert response.error.message == "Method not found: resources/list"


@pytest.mark.asyncio
async def test_tool_call_without_name(dispatcher):
    response = await dispatcher.dispatch(Request(id="2", method="tools/call", params={"arguments": {}}))

    assert response.error.code == -32602
    assert response.error.message == "Invalid tool call parameters: missing 'name'"


@pytest.mark.asyncio
async def test_unknown_tool(dispatcher):
    response = await dispatcher.dispatch(tool_call("git_push", {"repository_path": REPO}))

    assert response.error.code == -32602
    assert response.error.message == "Unknown tool: git_push"


@pytest.mark.asyncio
async def test_missing_repository_path_names_field(dispatcher):
    response = await dispatcher.dispatch(tool_call("git_auto_commit", {"model": "llama2"}))

    assert response.error.code == -32602
    assert "repository_path" in response.error.message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments",
    [
        {"repository_path": "../outside"},
        {"repository_path": REPO, "model": "bad model!"},
        {"repository_path": REPO, "commit_individually": "yes"},
        {"repository_path": 7},
    ],
)
async def test_invalid_arguments(dispatcher, arguments):
    response = await dispatcher.dispatch(tool_call("git_auto_commit", arguments))

    assert response.error.code == -32602


@pytest.mark.asyncio
async def test_auto_commit_summary(config, fake_vcs):
    generator = FakeGenerator(failures={"b.py": ProviderError("backend unavailable")})
    dispatcher = build_dispatcher(config, fake_vcs, generator)

    response = await dispatcher.dispatch(tool_call("git_auto_commit", {"repository_path": REPO}))

    content = response.result["content"]
    assert content[0]["type"] == "text"
    text = content[0]["text"]
    assert text.startswith("Processing completed: 2 commits made")
    assert "- a.py: Update a.py" in text
    assert "- b.py: backend unavailable (stage: Generation)" in text
    assert generator.calls[0][0] == "llama2"


@pytest.mark.asyncio
async def test_auto_commit_batch_with_model(config):
    vcs = FakeVersionControl(changes=make_changes("a.py", "b.py"))
    generator = FakeGenerator()
    dispatcher = build_dispatcher(config, vcs, generator)

    response = await dispatcher.dispatch(tool_call(
        "git_auto_commit",
        {"repository_path": REPO, "model": "llama3.2:latest", "commit_individually": False},
    ))

    assert "Processing completed: 1 commits made" in response.result["content"][0]["text"]
    assert [call[0] for call in generator.calls] == ["llama3.2:latest"]
    assert len(vcs.commits) == 1


@pytest.mark.asyncio
async def test_auto_commit_invalid_repository_is_a_result(config):
    dispatcher = build_dispatcher(config, FakeVersionControl(valid=False))

    response = await dispatcher.dispatch(tool_call("git_auto_commit", {"repository_path": REPO}))

    assert response.error is None
    assert f"- {REPO}: invalid repository (stage: Status)" in response.result["content"][0]["text"]


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error(dispatcher, mocker):
    mocker.patch.object(dispatcher.pipeline, "process", side_effect=RuntimeError("disk on fire"))

    response = await dispatcher.dispatch(tool_call("git_auto_commit", {"repository_path": REPO}))

    assert response.id == "1"
    assert response.error.code == -32603
    assert response.error.message == "Processing failed: disk on fire"


@pytest.mark.asyncio
async def test_show_diff(config):
    vcs = FakeVersionControl(diffs={"a.py": "diff --git a/a.py b/a.py\n+x\n"})
    dispatcher = build_dispatcher(config, vcs)

    response = await dispatcher.dispatch(tool_call("git_show_diff", {"repository_path": REPO, "file_path": "a.py"}))

    assert response.result["content"][0]["text"] == "diff --git a/a.py b/a.py\n+x\n"


@pytest.mark.asyncio
async def test_show_diff_without_changes(config):
    vcs = FakeVersionControl(diffs={None: ""})
    dispatcher = build_dispatcher(config, vcs)

    response = await dispatcher.dispatch(tool_call("git_show_diff", {"repository_path": REPO, "staged": True}))

    assert response.result["content"][0]["text"] == NO_CHANGES


@pytest.mark.asyncio
async def test_show_diff_invalid_repository(config):
    dispatcher = build_dispatcher(config, FakeVersionControl(valid=False))

    response = await dispatcher.dispatch(tool_call("git_show_diff", {"repository_path": REPO}))

    assert response.error.code == -32603
    assert response.error.message == f"Invalid git repository: {REPO}"
