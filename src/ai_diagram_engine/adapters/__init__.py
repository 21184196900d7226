"""
Provider adapters.

Each adapter translates canonical messages to one provider's wire format
and unwraps its responses.
"""

from ai_diagram_engine.adapters.anthropic import AnthropicAdapter
from ai_diagram_engine.adapters.base import MAX_TOKENS, ProviderAdapter, UpstreamStream
from ai_diagram_engine.adapters.openai import OpenAIAdapter
from ai_diagram_engine.adapters.registry import AdapterRegistry, default_registry, get_adapter

__all__ = [
    "MAX_TOKENS",
    "AdapterRegistry",
    "AnthropicAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "UpstreamStream",
    "default_registry",
    "get_adapter",
]
