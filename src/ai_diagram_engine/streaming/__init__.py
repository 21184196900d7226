"""
Streaming: provider SSE transcoding and canonical SSE framing.
"""

from ai_diagram_engine.streaming.sse import (
    DONE_FRAME,
    DONE_SENTINEL,
    SSELineDecoder,
    format_sse,
    parse_canonical_stream,
)
from ai_diagram_engine.streaming.transcoder import StreamTranscoder, transcode

__all__ = [
    "DONE_FRAME",
    "DONE_SENTINEL",
    "SSELineDecoder",
    "StreamTranscoder",
    "format_sse",
    "parse_canonical_stream",
    "transcode",
]
