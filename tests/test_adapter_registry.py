"""Tests for the adapter registry."""

from __future__ import annotations

import pytest

from ai_diagram_engine.adapters.anthropic import AnthropicAdapter
from ai_diagram_engine.adapters.openai import OpenAIAdapter
from ai_diagram_engine.adapters.registry import AdapterRegistry


class CustomAdapter(OpenAIAdapter):
    """OpenAI-compatible adapter under a different name."""

    name = "custom"
    label = "Custom"


class TestAdapterRegistry:
    """Tests for AdapterRegistry."""

    def test_builtin_providers(self) -> None:
        registry = AdapterRegistry()

        assert registry.list_names() == ["openai", "anthropic"]
        assert "anthropic" in registry
        assert registry.default_name == "openai"

    def test_register_factory(self) -> None:
        """Registered factories receive the lookup options."""
        registry = AdapterRegistry()
        registry.register_factory("custom", CustomAdapter)

        adapter = registry.get("custom", timeout=5)

        assert isinstance(adapter, CustomAdapter)
        assert adapter.timeout == 5
        assert "custom" in registry

    def test_register_overrides_existing(self) -> None:
        registry = AdapterRegistry()
        registry.register_factory("anthropic", CustomAdapter)

        assert isinstance(registry.get("anthropic"), CustomAdapter)

    def test_register_empty_name(self) -> None:
        with pytest.raises(ValueError):
            AdapterRegistry().register_factory("", CustomAdapter)

    def test_unregister(self) -> None:
        """Removed providers fall back to the default adapter."""
        registry = AdapterRegistry()

        assert registry.unregister("anthropic") is True
        assert registry.unregister("anthropic") is False
        assert isinstance(registry.get("anthropic"), OpenAIAdapter)

    def test_unregister_default_rejected(self) -> None:
        with pytest.raises(ValueError, match="default"):
            AdapterRegistry().unregister("openai")

    def test_missing_provider_uses_default(self) -> None:
        registry = AdapterRegistry(default_name="anthropic")

        assert isinstance(registry.get(None), AnthropicAdapter)
        assert isinstance(registry.get(""), AnthropicAdapter)
