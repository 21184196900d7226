"""Server-Sent Events framing helpers.

The canonical stream this package emits is deliberately tiny: every event
is ``data: {"content":"<delta>"}`` followed by a blank line, and the stream
may end with ``data: [DONE]``.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator

from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import CanonicalDelta

logger = get_logger("streaming.sse")

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DONE_FRAME = b"data: [DONE]\n\n"


def format_sse(delta: CanonicalDelta) -> bytes:
    """Encode one canonical delta as an SSE frame."""
    payload = json.dumps({"content": delta.text}, ensure_ascii=False, separators=(",", ":"))
    return f"{DATA_PREFIX}{payload}\n\n".encode()


class SSELineDecoder:
    """
    Incremental decoder from raw bytes to SSE ``data:`` payloads.

    Network reads do not respect line (or even UTF-8 character) boundaries,
    so bytes are decoded incrementally and the trailing partial line is
    carried over to the next ``feed()``.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Consume a chunk and return payloads of every completed data line."""
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [p for p in (self._payload(line) for line in lines) if p is not None]

    def flush(self) -> list[str]:
        """Treat whatever is left at end of stream as a final line."""
        self._buffer += self._decoder.decode(b"", final=True)
        rest, self._buffer = self._buffer, ""
        payload = self._payload(rest)
        return [payload] if payload is not None else []

    @staticmethod
    def _payload(line: str) -> str | None:
        stripped = line.strip()
        if not stripped.startswith(DATA_PREFIX):
            return None
        return stripped[len(DATA_PREFIX):]


async def parse_canonical_stream(
    stream: AsyncIterable[bytes],
) -> AsyncIterator[CanonicalDelta]:
    """
    Read a canonical SSE byte stream back into deltas.

    Stops at ``[DONE]``. Frames without a string ``content`` field and
    malformed frames are skipped.
    """
    decoder = SSELineDecoder()

    def decode(payloads: list[str]) -> tuple[list[CanonicalDelta], bool]:
        deltas: list[CanonicalDelta] = []
        for payload in payloads:
            if payload == DONE_SENTINEL:
                return deltas, True
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                logger.debug("Skipping malformed canonical frame: %.80s", payload)
                continue
            content = data.get("content") if isinstance(data, dict) else None
            if isinstance(content, str) and content:
                deltas.append(CanonicalDelta(text=content))
        return deltas, False

    async for chunk in stream:
        deltas, done = decode(decoder.feed(chunk))
        for delta in deltas:
            yield delta
        if done:
            return

    deltas, _ = decode(decoder.flush())
    for delta in deltas:
        yield delta
