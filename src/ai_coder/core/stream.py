"""Newline-delimited JSON stream decoding."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator

from loguru import logger

from ai_coder.core.types import DecodedToken
from ai_coder.errors import GenerationError, StreamParseError

NEWLINE = b"\n"


class StreamDecoder:
    """Reassembles arbitrary fragments into JSON lines and decodes tokens.

    One decoder holds the partial-line buffer for one stream; create a new
    instance per response.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self.lines_seen = 0

    def decode(self, fragments: Iterable[bytes | str]) -> Iterator[DecodedToken]:
        for fragment in fragments:
            self._buffer.extend(fragment.encode("utf-8") if isinstance(fragment, str) else fragment)
            while (pos := self._buffer.find(NEWLINE)) != -1:
                line = bytes(self._buffer[:pos])
                del self._buffer[: pos + 1]
                token = self._decode_line(line)
                if token is None:
                    continue
                yield token
                if token.is_done:
                    return

        if self._buffer:
            # Trailing object without a final newline.
            line = bytes(self._buffer)
            self._buffer.clear()
            token = self._decode_line(line)
            if token is not None:
                yield token
        logger.debug("stream.exhausted lines={}", self.lines_seen)

    def _decode_line(self, raw: bytes) -> DecodedToken | None:
        text = raw.decode("utf-8", errors="replace").strip()
        if not text:
            return None
        self.lines_seen += 1
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise StreamParseError(text, exc.msg) from exc
        if not isinstance(payload, dict):
            raise StreamParseError(text, "expected a JSON object")

        error = payload.get("error")
        if error:
            raise GenerationError(str(error))

        delta = payload.get("response", "")
        if not isinstance(delta, str):
            raise StreamParseError(text, "'response' is not a string")
        return DecodedToken(text_delta=delta, is_done=bool(payload.get("done", False)))


def decode_stream(fragments: Iterable[bytes | str]) -> Iterator[DecodedToken]:
    """Decode a fragment sequence with a fresh decoder."""
    return StreamDecoder().decode(fragments)
