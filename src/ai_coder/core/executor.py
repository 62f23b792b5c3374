"""Sequential execution of approved commands."""

from __future__ import annotations

import shutil
import subprocess
import sys
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import TextIO

from loguru import logger

from ai_coder.core.types import ExecutionResult, ExtractedCommand
from ai_coder.render import Renderer

SPAWN_FAILURE_EXIT_CODE = 127


class CommandState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CommandExecutor:
    """Runs commands one after another through bash.

    A failing command does not stop the batch. Child output is echoed to
    ``output`` line by line while it is captured.
    """

    def __init__(
        self,
        renderer: Renderer,
        *,
        cwd: Path | None = None,
        output: TextIO | None = None,
    ) -> None:
        self._renderer = renderer
        self._cwd = cwd
        self._output = output
        self.states: dict[int, CommandState] = {}

    def run_all(self, commands: Sequence[ExtractedCommand]) -> list[ExecutionResult]:
        self.states = {command.source_order: CommandState.PENDING for command in commands}
        results = [self.run(command) for command in commands]
        failed = sum(1 for result in results if not result.succeeded)
        logger.info("executor.finished total={} failed={}", len(results), failed)
        return results

    def run(self, command: ExtractedCommand) -> ExecutionResult:
        self.states[command.source_order] = CommandState.RUNNING
        self._renderer.command_started(command.body)
        result = self._spawn(command)
        self.states[command.source_order] = CommandState.SUCCEEDED if result.succeeded else CommandState.FAILED
        self._renderer.command_finished(command.body, result.exit_code)
        return result

    def _spawn(self, command: ExtractedCommand) -> ExecutionResult:
        bash_executable = shutil.which("bash") or "bash"
        output = self._output or sys.stdout
        captured: list[str] = []
        logger.debug("executor.spawn order={} cmd={}", command.source_order, command.body)
        try:
            # Commands were approved by the user (or auto-approved) before reaching here.
            process = subprocess.Popen(  # noqa: S603
                [bash_executable, "-c", command.body],
                cwd=self._cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            return ExecutionResult(command=command, exit_code=SPAWN_FAILURE_EXIT_CODE, output=f"error: {exc!s}")

        assert process.stdout is not None
        with process:
            for line in process.stdout:
                captured.append(line)
                output.write(line)
                output.flush()
        return ExecutionResult(command=command, exit_code=process.returncode, output="".join(captured))
