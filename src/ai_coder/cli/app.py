"""CLI main module for ai-coder."""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer
from loguru import logger

from ai_coder import __version__
from ai_coder.config import Settings, load_settings
from ai_coder.core.pipeline import PromptPipeline
from ai_coder.core.transport import OllamaClient
from ai_coder.core.types import PromptRequest
from ai_coder.errors import AiCoderError, ApiError, ConfigurationError, HostConnectionError
from ai_coder.logging_utils import configure_logging
from ai_coder.render import Renderer

app = typer.Typer(
    name="ai-coder",
    help="Local GPU-accelerated AI coding CLI backed by Ollama.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _exit_with_error() -> NoReturn:
    """Exit with error code."""
    raise typer.Exit(1)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ai-coder {__version__}")
        raise typer.Exit()


def build_client(settings: Settings) -> OllamaClient:
    """Create the transport for the configured host."""
    return OllamaClient(settings.host, timeout_seconds=settings.timeout_seconds)


def build_pipeline(client: OllamaClient, renderer: Renderer) -> PromptPipeline:
    return PromptPipeline(client=client, renderer=renderer)


def _list_models(client: OllamaClient, renderer: Renderer) -> None:
    try:
        models = client.list_models()
    except (HostConnectionError, ApiError) as exc:
        renderer.error(str(exc))
        _exit_with_error()
    if not models:
        renderer.info(f"No models installed on {client.host}.")
        return
    for name in models:
        typer.echo(name)


@app.command()
def main(
    prompt: str | None = typer.Argument(None, help="The coding prompt or question"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model to use [default: qwen2.5-coder]"),
    host: str | None = typer.Option(None, "--host", "-H", help="Ollama host (also OLLAMA_HOST)"),
    agent: bool = typer.Option(False, "--agent", "-a", help="Agent mode: run shell commands from the response"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Auto-approve commands in agent mode"),
    allow_unsafe_exec: bool = typer.Option(
        False, "--allow-unsafe-exec", help="Acknowledge that auto-approved commands run unreviewed"
    ),
    strict: bool = typer.Option(False, "--strict", help="Exit with status 1 if any agent command fails"),
    config: Path | None = typer.Option(None, "--config", "-c", help="TOML config file"),  # noqa: B008
    timeout: float | None = typer.Option(None, "--timeout", help="Request timeout in seconds"),
    temperature: float | None = typer.Option(None, "--temperature", help="Sampling temperature (0-2)"),
    top_p: float | None = typer.Option(None, "--top-p", help="Nucleus sampling (0-1)"),
    top_k: int | None = typer.Option(None, "--top-k", help="Top-k sampling"),
    num_ctx: int | None = typer.Option(None, "--num-ctx", help="Context window in tokens"),
    max_tokens: int | None = typer.Option(None, "--max-tokens", help="Upper bound on generated tokens"),
    check_model: bool = typer.Option(False, "--check-model", help="Fail early if the model is not installed"),
    list_models: bool = typer.Option(False, "--list-models", help="List models installed on the host and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
    version: bool = typer.Option(  # noqa: ARG001
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Send PROMPT to a local model and stream the answer."""
    renderer = Renderer()
    try:
        settings = load_settings(
            config,
            model=model,
            host=host,
            agent_mode=agent or None,
            auto_approve=yes or None,
            allow_unsafe_exec=allow_unsafe_exec or None,
            strict=strict or None,
            timeout_seconds=timeout,
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            num_ctx=num_ctx,
            max_tokens=max_tokens,
        )
    except ConfigurationError as exc:
        renderer.error(str(exc))
        _exit_with_error()

    configure_logging("DEBUG" if verbose else settings.log_level)
    logger.debug("cli.settings {}", settings.model_dump(exclude_none=True))
    client = build_client(settings)

    if list_models:
        _list_models(client, renderer)
        return

    if not prompt or not prompt.strip():
        renderer.error("a prompt is required")
        _exit_with_error()

    _run_prompt(prompt, settings, client, renderer, check_model=check_model)


def _run_prompt(
    prompt: str, settings: Settings, client: OllamaClient, renderer: Renderer, *, check_model: bool = False
) -> None:
    renderer.banner(mode=settings.mode, model=settings.model, host=settings.host)
    if settings.agent_mode and settings.auto_approve and not settings.allow_unsafe_exec:
        renderer.warning("auto-approving commands without --allow-unsafe-exec.")
        renderer.warning("model-generated commands will run unreviewed and could be harmful.")

    pipeline = build_pipeline(client, renderer)
    try:
        request = PromptRequest(model=settings.model, prompt=prompt, options=settings.generation_options())
        request.validate()
        if check_model:
            client.require_model(settings.model)
        result = pipeline.run(request, agent_mode=settings.agent_mode, auto_approve=settings.auto_approve)
    except AiCoderError as exc:
        renderer.error(str(exc))
        _exit_with_error()

    if result.transcript.error is not None and not result.transcript.text:
        renderer.error("no output was received from the model")
        _exit_with_error()
    if settings.strict and result.failed_commands:
        renderer.error(f"{len(result.failed_commands)} agent command(s) failed")
        _exit_with_error()
    renderer.complete()
