"""Shared core dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ai_coder.errors import ContextOverflowError, InvalidRequestError, StreamError

# Rough prompt size estimate used before the server tokenizes anything.
CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling parameters forwarded to the model as ``options``."""

    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    num_ctx: int | None = None
    num_predict: int | None = None

    def __post_init__(self) -> None:
        if self.temperature is not None:
            object.__setattr__(self, "temperature", min(max(self.temperature, 0.0), 2.0))
        if self.top_p is not None:
            object.__setattr__(self, "top_p", min(max(self.top_p, 0.0), 1.0))
        if self.top_k is not None and self.top_k <= 0:
            raise InvalidRequestError("top_k must be > 0")
        if self.num_ctx is not None and self.num_ctx <= 0:
            raise InvalidRequestError("num_ctx must be > 0")
        if self.num_predict is not None and self.num_predict <= 0:
            raise InvalidRequestError("num_predict must be > 0")
        if self.num_predict is not None and self.num_ctx is not None and self.num_predict > self.num_ctx:
            raise InvalidRequestError("num_predict cannot exceed num_ctx")

    def to_payload(self) -> dict[str, Any]:
        values = {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "top_k": self.top_k,
            "num_ctx": self.num_ctx,
            "num_predict": self.num_predict,
        }
        return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class PromptRequest:
    """One streaming generate call."""

    model: str
    prompt: str
    stream: bool = True
    options: GenerationOptions = field(default_factory=GenerationOptions)

    def validate(self) -> None:
        if not self.model.strip():
            raise InvalidRequestError("model name cannot be empty")
        if not self.prompt.strip():
            raise InvalidRequestError("prompt cannot be empty")
        if self.options.num_ctx is not None:
            estimated = len(self.prompt) // CHARS_PER_TOKEN + (self.options.num_predict or 0)
            if estimated > self.options.num_ctx:
                raise ContextOverflowError(estimated, self.options.num_ctx)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": self.model, "prompt": self.prompt, "stream": self.stream}
        options = self.options.to_payload()
        if options:
            payload["options"] = options
        return payload


@dataclass(frozen=True)
class DecodedToken:
    """One decoded increment of generated text."""

    text_delta: str
    is_done: bool = False


@dataclass(frozen=True)
class ExtractedCommand:
    """Shell command found in a fenced block of the transcript."""

    body: str
    source_order: int


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running one approved command."""

    command: ExtractedCommand
    exit_code: int
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass
class Transcript:
    """Append-only buffer of the generated text for one invocation."""

    parts: list[str] = field(default_factory=list)
    error: StreamError | None = None

    def append(self, text: str) -> None:
        if text:
            self.parts.append(text)

    @property
    def text(self) -> str:
        return "".join(self.parts)

    @property
    def degraded(self) -> bool:
        return self.error is not None

    def __str__(self) -> str:
        return self.text
