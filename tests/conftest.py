from __future__ import annotations

import io
from collections.abc import Iterator

import pytest
from loguru import logger
from rich.console import Console

from ai_coder.render import Renderer


class CapturingRenderer(Renderer):
    def __init__(self) -> None:
        self.buffer = io.StringIO()
        super().__init__(Console(file=self.buffer, force_terminal=False, color_system=None, width=200))

    @property
    def text(self) -> str:
        return self.buffer.getvalue()


@pytest.fixture
def renderer() -> CapturingRenderer:
    return CapturingRenderer()


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    for name in ("OLLAMA_HOST", "AI_CODER_HOST", "AI_CODER_MODEL", "AI_CODER_CONFIG", "AI_CODER_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    # loguru binds sys.stderr when the sink is added; CliRunner swaps it per invocation.
    monkeypatch.setattr("ai_coder.logging_utils._CONFIGURED_LEVEL", None)
    yield
    logger.remove()
