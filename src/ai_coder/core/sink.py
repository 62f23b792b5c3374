"""Terminal sink for streamed tokens."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import TextIO

from loguru import logger

from ai_coder.core.types import DecodedToken, Transcript
from ai_coder.errors import StreamError


class TerminalSink:
    """Writes token text to a stream as it arrives and keeps the transcript."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so that redirected stdout (tests, CliRunner) is honoured.
        return self._stream or sys.stdout

    def consume(self, tokens: Iterable[DecodedToken]) -> Transcript:
        """Drain ``tokens`` into the terminal.

        A ``StreamError`` raised while pulling tokens is stored on the returned
        transcript instead of propagating; the text written so far is kept.
        """
        transcript = Transcript()
        stream = self.stream
        try:
            for token in tokens:
                if token.text_delta:
                    stream.write(token.text_delta)
                    stream.flush()
                    transcript.append(token.text_delta)
        except StreamError as exc:
            logger.warning("sink.stream_error chars={} error={}", len(transcript.text), exc)
            transcript.error = exc
        return transcript

    def finish_line(self, transcript: Transcript) -> None:
        """Terminate the generated text with a newline if it lacks one."""
        text = transcript.text
        if text and not text.endswith("\n"):
            self.stream.write("\n")
            self.stream.flush()
