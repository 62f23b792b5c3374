"""Application-level exception types for ai-coder."""

from __future__ import annotations


class AiCoderError(Exception):
    """Base exception for ai-coder."""


class ConfigurationError(AiCoderError):
    """Raised when settings or the config file are invalid."""


class InvalidRequestError(AiCoderError, ValueError):
    """Raised when a prompt request is malformed or cannot be served as given."""


class ContextOverflowError(InvalidRequestError):
    """Raised when the prompt plus the token budget cannot fit the context window."""

    def __init__(self, estimated_tokens: int, context_window: int) -> None:
        super().__init__(
            f"request needs about {estimated_tokens} tokens but the context window is {context_window}"
        )
        self.estimated_tokens = estimated_tokens
        self.context_window = context_window


class ModelNotFoundError(AiCoderError):
    """Raised when the requested model is not installed on the host."""

    def __init__(self, model: str, host: str) -> None:
        super().__init__(f"model {model!r} is not installed on {host}")
        self.model = model
        self.host = host


class HostConnectionError(AiCoderError):
    """Raised when the inference host is unreachable, refuses or times out."""

    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"could not reach {host}: {reason}")
        self.host = host
        self.reason = reason


class ApiError(AiCoderError):
    """Raised when the inference host answers with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        detail = body.strip() or "(empty body)"
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.body = body


class StreamError(AiCoderError):
    """Base exception for failures in the middle of a response stream.

    Tokens already written to the terminal stay there; the pipeline continues
    on whatever transcript it has collected so far.
    """


class StreamParseError(StreamError):
    """Raised when a stream line is not a valid JSON object."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"malformed stream line ({reason}): {line[:120]!r}")
        self.line = line
        self.reason = reason


class GenerationError(StreamError):
    """Raised when the server reports an error inside the stream."""

    def __init__(self, message: str) -> None:
        super().__init__(f"model error: {message}")
        self.message = message
