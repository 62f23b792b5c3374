"""Interactive approval for extracted commands."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from loguru import logger

from ai_coder.core.types import ExtractedCommand
from ai_coder.render import Renderer

AFFIRMATIVE_ANSWERS = frozenset({"y", "yes"})
APPROVAL_PROMPT = "Execute these commands? (y/N): "


class ApprovalGate:
    """Decides whether an extracted command batch may run."""

    def __init__(self, renderer: Renderer, read_answer: Callable[[str], str] | None = None) -> None:
        self._renderer = renderer
        self._read_answer = read_answer or renderer.ask

    def gate(self, commands: Sequence[ExtractedCommand], auto_approve: bool) -> bool:
        if not commands:
            return False
        if auto_approve:
            logger.info("approval.auto count={}", len(commands))
            return True

        self._renderer.command_listing([command.body for command in commands])
        try:
            answer = self._read_answer(APPROVAL_PROMPT)
        except (EOFError, KeyboardInterrupt):
            answer = ""
        approved = answer.strip().lower() in AFFIRMATIVE_ANSWERS
        if not approved:
            self._renderer.info("Skipped.")
        logger.info("approval.answered approved={} count={}", approved, len(commands))
        return approved
