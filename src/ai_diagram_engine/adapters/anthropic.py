"""
Anthropic Messages API adapter.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any, TypedDict

from ai_diagram_engine.adapters.base import ProviderAdapter, dig
from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import ContentPart, EffectiveEnvironment, ImagePart, Message, TextPart

logger = get_logger("adapters.anthropic")

ANTHROPIC_VERSION = "2023-06-01"

_DATA_URI_RE = re.compile(r"^data:(image/[^;]+);base64,(.+)$", re.DOTALL)


class AnthropicImageSource(TypedDict):
    """Base64 image source."""

    type: str
    media_type: str
    data: str


class AnthropicContentPart(TypedDict, total=False):
    """Anthropic content block (text or image)."""

    type: str
    text: str
    source: AnthropicImageSource


def convert_content_part(part: ContentPart) -> AnthropicContentPart:
    """Convert one canonical part to an Anthropic content block.

    Base64 ``data:`` images become image blocks; remote URLs and malformed
    data URIs degrade to a text block naming the URL.
    """
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    match = _DATA_URI_RE.match(part.url)
    if match:
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": match.group(1),
                "data": match.group(2),
            },
        }
    logger.debug("Image is not a base64 data URI, sending as text reference")
    return {"type": "text", "text": f"[Image URL: {part.url}]"}


def convert_content_parts(parts: Sequence[ContentPart]) -> list[AnthropicContentPart]:
    """Convert canonical parts, dropping empty text and empty image references."""
    converted: list[AnthropicContentPart] = []
    for part in parts:
        if isinstance(part, ImagePart) and not part.url:
            continue
        block = convert_content_part(part)
        if block["type"] == "text" and not block.get("text"):
            continue
        converted.append(block)
    return converted


def split_system(messages: Sequence[Message]) -> tuple[str, list[Message]]:
    """Separate the system prompt from the conversation.

    The first system message supplies the prompt; every system message is
    removed from the returned conversation.
    """
    system = ""
    rest: list[Message] = []
    for msg in messages:
        if msg.role == "system":
            if not system:
                system = msg.text
            continue
        rest.append(msg)
    return system, rest


class AnthropicAdapter(ProviderAdapter):
    """
    Adapter for the Anthropic Messages API.

    Example:
        adapter = AnthropicAdapter()
        stream = await adapter.stream_chat(messages, env)
        async for chunk in stream:
            ...
    """

    name = "anthropic"
    label = "Anthropic"

    def endpoint(self, env: EffectiveEnvironment) -> str:
        return f"{self.base(env)}/messages"

    def build_headers(self, env: EffectiveEnvironment) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": env.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_payload(
        self,
        messages: Sequence[Message],
        env: EffectiveEnvironment,
        stream: bool,
    ) -> dict[str, Any]:
        system, conversation = split_system(messages)
        anthropic_messages: list[dict[str, Any]] = []
        for msg in conversation:
            if isinstance(msg.content, str):
                content: Any = msg.content
            else:
                content = convert_content_parts(msg.content)
            anthropic_messages.append({"role": msg.role, "content": content})

        payload: dict[str, Any] = {
            "model": env.model_id,
            "max_tokens": self.max_tokens,
            "messages": anthropic_messages,
        }
        if system:
            payload["system"] = system
        if stream:
            payload["stream"] = True
        return payload

    def parse_response(self, data: Any) -> str:
        text = dig(data, "content", 0, "text")
        return text if isinstance(text, str) else ""

    def extract_delta(self, event: Any) -> str | None:
        if dig(event, "type") != "content_block_delta":
            return None
        text = dig(event, "delta", "text")
        if isinstance(text, str) and text:
            return text
        return None
