"""
Adapter registry mapping provider names to adapter factories.

Example:
    from ai_diagram_engine.adapters.registry import AdapterRegistry

    registry = AdapterRegistry()
    registry.register_factory("my-llm", lambda **kw: MyAdapter(**kw))

    adapter = registry.get("anthropic", timeout=60)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ai_diagram_engine.adapters.anthropic import AnthropicAdapter
from ai_diagram_engine.adapters.base import ProviderAdapter
from ai_diagram_engine.adapters.openai import OpenAIAdapter
from ai_diagram_engine.logging import get_logger

logger = get_logger("adapters.registry")

# Type for adapter factory functions: (**options) -> ProviderAdapter
AdapterFactory = Callable[..., ProviderAdapter]


class AdapterRegistry:
    """
    A registry of provider adapter factories.

    Lookups of unknown providers fall back to the default entry
    (``openai``), so any OpenAI-compatible endpoint works without being
    registered explicitly.
    """

    def __init__(self, default_name: str = "openai") -> None:
        self._factories: dict[str, AdapterFactory] = {
            "openai": OpenAIAdapter,
            "anthropic": AnthropicAdapter,
        }
        self._default_name = default_name

    def register_factory(self, name: str, factory: AdapterFactory) -> None:
        """
        Register an adapter factory.

        Raises:
            ValueError: If name is empty
        """
        if not name:
            raise ValueError("Adapter name must not be empty")
        if name in self._factories:
            logger.debug("Overriding adapter factory: %s", name)
        self._factories[name] = factory

    def unregister(self, name: str) -> bool:
        """Remove a factory. Returns True if it existed."""
        if name == self._default_name:
            raise ValueError("Cannot unregister the default adapter")
        return self._factories.pop(name, None) is not None

    def get(self, provider: str | None, **options: Any) -> ProviderAdapter:
        """Create an adapter for ``provider``, falling back to the default."""
        factory = self._factories.get(provider or "")
        if factory is None:
            if provider:
                logger.debug(
                    "Unknown provider %r, using %s adapter", provider, self._default_name
                )
            factory = self._factories[self._default_name]
        return factory(**options)

    def list_names(self) -> list[str]:
        """Registered provider names."""
        return list(self._factories)

    @property
    def default_name(self) -> str:
        return self._default_name

    def __contains__(self, name: str) -> bool:
        return name in self._factories


default_registry = AdapterRegistry()


def get_adapter(provider: str | None, **options: Any) -> ProviderAdapter:
    """Create an adapter from the default registry."""
    return default_registry.get(provider, **options)
