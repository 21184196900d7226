"""
OpenAI-compatible chat completions adapter.

Works with any endpoint that speaks ``POST {base_url}/chat/completions``
with bearer authentication (OpenAI, Azure-style proxies, local servers).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ai_diagram_engine.adapters.base import ProviderAdapter, dig
from ai_diagram_engine.models import EffectiveEnvironment, Message


class OpenAIAdapter(ProviderAdapter):
    """
    Adapter for OpenAI-compatible providers.

    The message list is sent verbatim: string content stays a string and
    multimodal content stays an ordered array of ``text``/``image_url`` parts.

    Example:
        adapter = OpenAIAdapter()
        text = await adapter.chat(
            [Message(role="user", content="Draw a login flow")],
            EffectiveEnvironment("openai", "https://api.openai.com/v1", key, "gpt-4o-mini"),
        )
    """

    name = "openai"
    label = "OpenAI"

    def endpoint(self, env: EffectiveEnvironment) -> str:
        return f"{self.base(env)}/chat/completions"

    def build_headers(self, env: EffectiveEnvironment) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {env.api_key}",
        }

    def build_payload(
        self,
        messages: Sequence[Message],
        env: EffectiveEnvironment,
        stream: bool,
    ) -> dict[str, Any]:
        return {
            "model": env.model_id,
            "messages": [m.to_dict() for m in messages],
            "max_tokens": self.max_tokens,
            "stream": stream,
        }

    def parse_response(self, data: Any) -> str:
        content = dig(data, "choices", 0, "message", "content")
        return content if isinstance(content, str) else ""

    def extract_delta(self, event: Any) -> str | None:
        content = dig(event, "choices", 0, "delta", "content")
        if isinstance(content, str) and content:
            return content
        return None
