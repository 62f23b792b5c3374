"""One prompt invocation: stream, then optionally extract and execute."""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from ai_coder.core.approval import ApprovalGate
from ai_coder.core.executor import CommandExecutor
from ai_coder.core.extractor import extract_commands
from ai_coder.core.sink import TerminalSink
from ai_coder.core.stream import StreamDecoder
from ai_coder.core.transport import OllamaClient
from ai_coder.core.types import ExecutionResult, ExtractedCommand, PromptRequest, Transcript
from ai_coder.render import Renderer


@dataclass(frozen=True)
class PipelineResult:
    """What happened during one invocation."""

    transcript: Transcript
    commands: list[ExtractedCommand] = field(default_factory=list)
    approved: bool = False
    results: list[ExecutionResult] = field(default_factory=list)

    @property
    def failed_commands(self) -> list[ExecutionResult]:
        return [result for result in self.results if not result.succeeded]


class PromptPipeline:
    """Wires transport, decoder, sink and the agent-mode stages together."""

    def __init__(
        self,
        *,
        client: OllamaClient,
        renderer: Renderer,
        sink: TerminalSink | None = None,
        gate: ApprovalGate | None = None,
        executor: CommandExecutor | None = None,
    ) -> None:
        self._client = client
        self._renderer = renderer
        self._sink = sink or TerminalSink()
        self._gate = gate or ApprovalGate(renderer)
        self._executor = executor or CommandExecutor(renderer)

    def stream(self, request: PromptRequest) -> Transcript:
        """Stream one completion to the terminal and return its transcript.

        Raises:
            HostConnectionError: If the host cannot be reached.
            ApiError: If the host rejects the request.
        """
        fragments = self._client.send(request)
        transcript = self._sink.consume(StreamDecoder().decode(fragments))
        self._sink.finish_line(transcript)
        logger.info("pipeline.streamed chars={} degraded={}", len(transcript.text), transcript.degraded)
        return transcript

    def run(self, request: PromptRequest, *, agent_mode: bool, auto_approve: bool) -> PipelineResult:
        transcript = self.stream(request)
        if transcript.error is not None:
            self._renderer.warning(f"response stream ended early: {transcript.error}")
        if not agent_mode:
            return PipelineResult(transcript=transcript)
        return self.run_agent(transcript, auto_approve=auto_approve)

    def run_agent(self, transcript: Transcript, *, auto_approve: bool) -> PipelineResult:
        commands = extract_commands(transcript.text)
        logger.info("pipeline.extracted count={}", len(commands))
        if not commands:
            self._renderer.info("No shell commands found in the response.")
            return PipelineResult(transcript=transcript)

        approved = self._gate.gate(commands, auto_approve)
        if not approved:
            return PipelineResult(transcript=transcript, commands=commands)

        results = self._executor.run_all(commands)
        self._renderer.summary(len(results), sum(1 for result in results if not result.succeeded))
        return PipelineResult(transcript=transcript, commands=commands, approved=True, results=results)
