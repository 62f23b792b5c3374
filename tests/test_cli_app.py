import importlib
import json
from collections.abc import Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ai_coder import __version__
from ai_coder.core.types import PromptRequest
from ai_coder.errors import HostConnectionError, ModelNotFoundError

cli_app_module = importlib.import_module("ai_coder.cli.app")


class _FakeClient:
    def __init__(self, host: str, fragments: list[bytes], error: Exception | None = None) -> None:
        self.host = host
        self.fragments = fragments
        self.error = error
        self.requests: list[PromptRequest] = []

    def send(self, request: PromptRequest) -> Iterator[bytes]:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return iter(self.fragments)

    def list_models(self) -> list[str]:
        if self.error is not None:
            raise self.error
        return ["qwen2.5-coder:7b", "llama3:8b"]

    def require_model(self, name: str) -> None:
        if name not in self.list_models():
            raise ModelNotFoundError(name, self.host)


def _stream(*texts: str) -> list[bytes]:
    lines = [json.dumps({"response": text, "done": False}).encode() + b"\n" for text in texts]
    return [*lines, b'{"response":"","done":true}\n']


@pytest.fixture
def fake_client(monkeypatch: pytest.MonkeyPatch):
    holder: dict[str, object] = {"fragments": _stream("fn ", "main(){}"), "error": None}

    def _fake_build_client(settings):
        client = _FakeClient(settings.host, holder["fragments"], holder["error"])  # type: ignore[arg-type]
        holder["client"] = client
        holder["settings"] = settings
        return client

    monkeypatch.setattr(cli_app_module, "build_client", _fake_build_client)
    return holder


def test_chat_prompt_streams_to_stdout(fake_client) -> None:
    runner = CliRunner()
    result = runner.invoke(cli_app_module.app, ["write main", "--model", "codellama", "--host", "box:11434"])
    assert result.exit_code == 0, result.output
    assert "fn main(){}" in result.output
    assert "Mode: CHAT" in result.output
    assert "Using model: codellama" in result.output
    assert "Connecting to: http://box:11434" in result.output
    assert "Complete" in result.output
    [request] = fake_client["client"].requests
    assert request.model == "codellama"
    assert request.prompt == "write main"


def test_agent_mode_declined_by_user(fake_client) -> None:
    fake_client["fragments"] = _stream("```bash\necho from-agent\n```")
    runner = CliRunner()
    result = runner.invoke(cli_app_module.app, ["setup", "--agent"], input="n\n")
    assert result.exit_code == 0
    assert "Mode: AGENT" in result.output
    assert "echo from-agent" in result.output
    assert "Skipped." in result.output
    assert "Command succeeded" not in result.output


def test_agent_mode_approved_by_user(fake_client) -> None:
    fake_client["fragments"] = _stream("```bash\necho from-agent\n```")
    runner = CliRunner()
    result = runner.invoke(cli_app_module.app, ["setup", "-a"], input="y\n")
    assert result.exit_code == 0, result.output
    assert "Command succeeded" in result.output


def test_auto_approve_warns_without_unsafe_ack(fake_client) -> None:
    fake_client["fragments"] = _stream("```bash\ntrue\n```")
    runner = CliRunner()
    result = runner.invoke(cli_app_module.app, ["setup", "-a", "-y"])
    assert result.exit_code == 0
    assert "without --allow-unsafe-exec" in result.output

    result = runner.invoke(cli_app_module.app, ["setup", "-a", "-y", "--allow-unsafe-exec"])
    assert result.exit_code == 0
    assert "without --allow-unsafe-exec" not in result.output


def test_failed_commands_exit_zero_unless_strict(fake_client) -> None:
    fake_client["fragments"] = _stream("```bash\nexit 4\necho ok\n```")
    runner = CliRunner()
    result = runner.invoke(cli_app_module.app, ["go", "-a", "-y"])
    assert result.exit_code == 0
    assert "failed with exit code 4" in result.output

    result = runner.invoke(cli_app_module.app, ["go", "-a", "-y", "--strict"])
    assert result.exit_code == 1
    assert "1 agent command(s) failed" in result.output


def test_connection_error_exits_one(fake_client) -> None:
    fake_client["error"] = HostConnectionError("http://localhost:11434", "connection refused or host unreachable")
    result = CliRunner().invoke(cli_app_module.app, ["hello"])
    assert result.exit_code == 1
    assert "could not reach" in result.output


def test_parse_error_before_any_output_exits_one(fake_client) -> None:
    fake_client["fragments"] = [b"<html>not ndjson</html>\n"]
    result = CliRunner().invoke(cli_app_module.app, ["hello"])
    assert result.exit_code == 1
    assert "no output was received" in result.output


def test_parse_error_after_output_is_a_warning(fake_client) -> None:
    fake_client["fragments"] = [*_stream("partial")[:1], b"garbage\n"]
    result = CliRunner().invoke(cli_app_module.app, ["hello"])
    assert result.exit_code == 0
    assert "partial" in result.output
    assert "stream ended early" in result.output


def test_missing_prompt_is_an_error(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, [])
    assert result.exit_code == 1
    assert "a prompt is required" in result.output


def test_list_models(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["--list-models"])
    assert result.exit_code == 0
    assert "qwen2.5-coder:7b" in result.output
    assert "llama3:8b" in result.output


def test_generation_options_are_forwarded(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["hi", "--temperature", "9", "--num-ctx", "2048"])
    assert result.exit_code == 0, result.output
    [request] = fake_client["client"].requests
    assert request.options.to_payload() == {"temperature": 2.0, "num_ctx": 2048}


def test_max_tokens_is_forwarded(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["hi", "--num-ctx", "2048", "--max-tokens", "256"])
    assert result.exit_code == 0, result.output
    [request] = fake_client["client"].requests
    assert request.options.to_payload() == {"num_ctx": 2048, "num_predict": 256}


def test_max_tokens_above_context_window_exits_one(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["hi", "--num-ctx", "128", "--max-tokens", "256"])
    assert result.exit_code == 1
    assert "max_tokens cannot exceed num_ctx" in result.output


def test_context_overflow_exits_one_before_sending(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["x" * 800, "--num-ctx", "256", "--max-tokens", "64"])
    assert result.exit_code == 1
    assert "context window is 256" in result.output
    assert fake_client["client"].requests == []


def test_check_model_fails_for_missing_model(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["hi", "--model", "mistral", "--check-model"])
    assert result.exit_code == 1
    assert "not installed" in result.output
    assert fake_client["client"].requests == []


def test_check_model_passes_for_installed_model(fake_client) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["hi", "--model", "llama3:8b", "--check-model"])
    assert result.exit_code == 0, result.output
    assert len(fake_client["client"].requests) == 1


def test_config_file_supplies_defaults(fake_client, tmp_path: Path) -> None:
    config = tmp_path / "ai-coder.toml"
    config.write_text('model = "deepseek-coder"\nhost = "http://gpu:11434"\n')
    result = CliRunner().invoke(cli_app_module.app, ["hi", "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert fake_client["settings"].model == "deepseek-coder"
    assert "Connecting to: http://gpu:11434" in result.output


def test_bad_config_exits_one(fake_client, tmp_path: Path) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["hi", "--config", str(tmp_path / "missing.toml")])
    assert result.exit_code == 1
    assert "config file not found" in result.output


def test_version() -> None:
    result = CliRunner().invoke(cli_app_module.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
