"""Streaming pipeline and agent-mode stages."""

from .approval import ApprovalGate
from .executor import CommandExecutor, CommandState
from .extractor import extract_commands
from .pipeline import PipelineResult, PromptPipeline
from .sink import TerminalSink
from .stream import StreamDecoder, decode_stream
from .transport import OllamaClient
from .types import DecodedToken, ExecutionResult, ExtractedCommand, GenerationOptions, PromptRequest, Transcript

__all__ = [
    "ApprovalGate",
    "CommandExecutor",
    "CommandState",
    "DecodedToken",
    "ExecutionResult",
    "ExtractedCommand",
    "GenerationOptions",
    "OllamaClient",
    "PipelineResult",
    "PromptPipeline",
    "PromptRequest",
    "StreamDecoder",
    "TerminalSink",
    "Transcript",
    "decode_stream",
    "extract_commands",
]
