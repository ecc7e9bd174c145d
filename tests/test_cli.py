import json

import pytest
from click.testing import CliRunner

import cli as cli_module
from cli import cli
from config.models import CacheConfig, Config
from conftest import FakeGenerator, FakeVersionControl, make_changes
from core.formatter.jinja_formatter import Jinja2Formatter
from core.pipeline import ChangeProcessingPipeline
from utils.errors import ProviderError


@pytest.fixture(autouse=True)
def quiet_logger(mocker):
    mocker.patch("cli.setup_logger")


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "model:\n"
        "  provider: dummy\n"
        "cache:\n"
        "  enabled: false\n"
    )
    return str(path)


@pytest.fixture
def runner():
    return CliRunner()


def json_lines(output):
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def test_serve_answers_requests(runner, config_file):
    requests = (
        '{"jsonrpc": "2.0", "id": "1", "method": "initialize"}\n'
        "not json\n"
        '{"jsonrpc": "2.0", "id": "2", "method": "tools/list"}\n'
    )

    result = runner.invoke(cli, ["-c", config_file, "serve"], input=requests)

    assert result.exit_code == 0
    replies = json_lines(result.output)
    assert [reply["id"] for reply in replies] == ["1", None, "2"]
    assert replies[1]["error"]["code"] == -32700


def test_serve_survives_invalid_utf8(runner, config_file):
    requests = b'\xc3\x28 not utf-8\n{"jsonrpc": "2.0", "id": "2", "method": "initialize"}\n'

    result = runner.invoke(cli, ["-c", config_file, "serve"], input=requests)

    assert result.exit_code == 0
    replies = json_lines(result.output)
    assert [reply["id"] for reply in replies] == [None, "2"]
    assert replies[0]["error"]["code"] == -32700


def test_serve_is_default_command(runner, config_file):
    result = runner.invoke(cli, ["-c", config_file], input='{"jsonrpc": "2.0", "id": 5, "method": "initialize"}\n')

    assert result.exit_code == 0
    assert json_lines(result.output)[0]["result"]["serverInfo"]["name"] == "aicommit-server"


def test_commit_prints_summary(runner, config_file, tmp_path, mocker):
    def build(config):
        vcs = FakeVersionControl(changes=make_changes("a.py"))
        generator = mocker.MagicMock(formatter=Jinja2Formatter())
        return ChangeProcessingPipeline(vcs, FakeGenerator(), config), vcs, generator

    mocker.patch("cli.build_pipeline", side_effect=build)

    result = runner.invoke(cli, ["-c", config_file, "commit", str(tmp_path)])

    assert result.exit_code == 0
    assert "Processing completed: 1 commits made" in result.output
    assert "Update a.py" in result.output


def test_commit_exits_nonzero_on_errors(runner, config_file, tmp_path, mocker):
    def build(config):
        vcs = FakeVersionControl(changes=make_changes("a.py"))
        generator = FakeGenerator(failures={"a.py": ProviderError("offline")})
        return ChangeProcessingPipeline(vcs, generator, config), vcs, mocker.MagicMock(formatter=Jinja2Formatter())

    mocker.patch("cli.build_pipeline", side_effect=build)

    result = runner.invoke(cli, ["-c", config_file, "commit", str(tmp_path), "--batch"])

    assert result.exit_code == 1
    assert "offline" in result.output


def test_commit_rejects_bad_model(runner, config_file, tmp_path):
    result = runner.invoke(cli, ["-c", config_file, "commit", str(tmp_path), "--model", "bad model"])

    assert result.exit_code == 2
    assert "Invalid model name" in result.output


def test_models_lists_provider_models(runner, config_file):
    result = runner.invoke(cli, ["-c", config_file, "models"])

    assert result.exit_code == 0
    assert "llama2" in result.output


def test_models_check(runner, config_file):
    assert runner.invoke(cli, ["-c", config_file, "models", "--check", "llama2"]).exit_code == 0
    assert runner.invoke(cli, ["-c", config_file, "models", "--check", "mistral"]).exit_code == 1


def test_config_error_exits(runner, tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("processing:\n  max_concurrent_files: 0\n")

    result = runner.invoke(cli, ["-c", str(bad), "models"])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_build_dispatcher_wires_formatter():
    config = Config(cache=CacheConfig(enabled=False))
    dispatcher = cli_module.build_dispatcher(config)

    assert dispatcher.formatter is dispatcher.pipeline.generator.formatter
    assert dispatcher.vcs is dispatcher.pipeline.vcs
