"""
Provider SSE to canonical SSE transcoding.

The transcoder is a single-consumer pipeline stage: it pulls byte chunks
from the upstream response, emits canonical deltas in arrival order, and
releases the upstream exactly once however the stream ends (normal end,
read error, or the consumer walking away).
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterable, AsyncIterator
from contextlib import aclosing
from typing import Any

import httpx

from ai_diagram_engine.adapters.base import ProviderAdapter
from ai_diagram_engine.adapters.registry import get_adapter
from ai_diagram_engine.errors import UpstreamTransportError
from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import CanonicalDelta
from ai_diagram_engine.streaming.sse import DONE_FRAME, DONE_SENTINEL, SSELineDecoder, format_sse

logger = get_logger("streaming.transcoder")


async def _release(upstream: Any) -> None:
    aclose = getattr(upstream, "aclose", None)
    if aclose is not None:
        await aclose()


class StreamTranscoder:
    """
    Turn one provider's SSE byte stream into canonical deltas.

    Example:
        upstream = await adapter.stream_chat(messages, env)
        transcoder = StreamTranscoder(upstream, env.provider)
        async with aclosing(transcoder.deltas()) as deltas:
            async for delta in deltas:
                print(delta.text, end="")
    """

    def __init__(
        self,
        upstream: AsyncIterable[bytes],
        provider: str | ProviderAdapter,
    ) -> None:
        self.upstream = upstream
        if isinstance(provider, ProviderAdapter):
            self.adapter = provider
        else:
            self.adapter = get_adapter(provider)
        self.done_seen = False
        self.dropped_frames = 0
        self._consumed = False

    def _decode(self, payloads: list[str]) -> list[CanonicalDelta]:
        deltas: list[CanonicalDelta] = []
        for payload in payloads:
            if payload == DONE_SENTINEL:
                self.done_seen = True
                break
            try:
                event = json.loads(payload)
            except json.JSONDecodeError:
                self.dropped_frames += 1
                logger.debug("Dropping malformed %s frame: %.80s", self.adapter.name, payload)
                continue
            text = self.adapter.extract_delta(event)
            if text:
                deltas.append(CanonicalDelta(text=text))
        return deltas

    async def deltas(self) -> AsyncIterator[CanonicalDelta]:
        """
        Yield canonical deltas until the upstream ends or sends ``[DONE]``.

        Raises:
            UpstreamTransportError: If reading the upstream fails
            RuntimeError: If called twice on the same transcoder
        """
        if self._consumed:
            raise RuntimeError("StreamTranscoder can only be consumed once")
        self._consumed = True

        decoder = SSELineDecoder()
        count = 0
        try:
            try:
                async for chunk in self.upstream:
                    for delta in self._decode(decoder.feed(chunk)):
                        count += 1
                        yield delta
                    if self.done_seen:
                        break
                else:
                    for delta in self._decode(decoder.flush()):
                        count += 1
                        yield delta
            except httpx.HTTPError as exc:
                raise UpstreamTransportError(
                    f"{self.adapter.label} stream read failed: {exc}",
                    provider=self.adapter.name,
                ) from exc
        finally:
            await _release(self.upstream)
            logger.debug(
                "%s stream closed: %d deltas, %d dropped frames, done=%s",
                self.adapter.name, count, self.dropped_frames, self.done_seen,
            )

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield canonical SSE frames, ending with ``[DONE]`` if upstream sent it."""
        async with aclosing(self.deltas()) as deltas:
            async for delta in deltas:
                yield format_sse(delta)
        if self.done_seen:
            yield DONE_FRAME


def transcode(
    upstream: AsyncIterable[bytes],
    provider: str | ProviderAdapter,
) -> AsyncIterator[bytes]:
    """Transcode a provider SSE byte stream into canonical SSE frames."""
    return StreamTranscoder(upstream, provider).frames()
