"""
Configuration models for the diagram engine.

Server defaults come from environment variables (optionally a ``.env``
file); orchestration settings can be loaded from YAML/JSON-like dicts or
constructed programmatically.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from ai_diagram_engine.models import EffectiveEnvironment

DEFAULT_PROVIDER = "openai"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL_ID = "gpt-4o-mini"


@dataclass(frozen=True)
class ServerDefaults:
    """
    Provider settings configured on the server side.

    Environment variables:
        AI_PROVIDER      "openai" (default) or "anthropic"
        AI_BASE_URL      API root, e.g. https://api.openai.com/v1
        AI_API_KEY       provider key (may be empty if clients bring their own)
        AI_MODEL_ID      model identifier
        ACCESS_PASSWORD  optional password that gates and quota-exempts requests
    """

    provider: str = DEFAULT_PROVIDER
    base_url: str = DEFAULT_BASE_URL
    api_key: str = field(default="", repr=False)
    model_id: str = DEFAULT_MODEL_ID
    access_password: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(
        cls,
        environ: dict[str, str] | None = None,
        dotenv: bool = True,
    ) -> ServerDefaults:
        """Read defaults from the process environment.

        Args:
            environ: Mapping to read instead of ``os.environ``
            dotenv: Load a ``.env`` file first (ignored when environ is given)
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = dict(os.environ)
        return cls(
            provider=environ.get("AI_PROVIDER") or DEFAULT_PROVIDER,
            base_url=environ.get("AI_BASE_URL") or DEFAULT_BASE_URL,
            api_key=environ.get("AI_API_KEY") or "",
            model_id=environ.get("AI_MODEL_ID") or DEFAULT_MODEL_ID,
            access_password=environ.get("ACCESS_PASSWORD") or None,
        )

    def to_environment(self) -> EffectiveEnvironment:
        return EffectiveEnvironment(
            provider=self.provider,
            base_url=self.base_url,
            api_key=self.api_key,
            model_id=self.model_id,
        )


@dataclass(frozen=True)
class LLMOverride:
    """Client-supplied provider settings (``llmConfig`` on the wire)."""

    provider: str | None = None
    base_url: str | None = None
    api_key: str | None = field(default=None, repr=False)
    model_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> LLMOverride | None:
        """Parse camelCase wire keys (snake_case also accepted)."""
        if not data or not isinstance(data, dict):
            return None

        def pick(*keys: str) -> str | None:
            for key in keys:
                value = data.get(key)
                if isinstance(value, str) and value:
                    return value
            return None

        return cls(
            provider=pick("provider"),
            base_url=pick("baseUrl", "base_url"),
            api_key=pick("apiKey", "api_key"),
            model_id=pick("modelId", "model_id"),
        )

    def to_dict(self) -> dict[str, str]:
        """Serialize back to wire keys, omitting unset fields."""
        data = {
            "provider": self.provider,
            "baseUrl": self.base_url,
            "apiKey": self.api_key,
            "modelId": self.model_id,
        }
        return {k: v for k, v in data.items() if v}


@dataclass
class EngineConfig:
    """
    Orchestration settings.

    Example YAML:
        streaming: true
        multi_phase_engines:
          - excalidraw
        request_timeout: 120
        prompt_dirs:
          - ./prompts
        log_level: DEBUG
    """

    streaming: bool = True  # Consume provider SSE instead of blocking calls
    multi_phase_engines: list[str] = field(default_factory=list)  # Engines using elements+links
    request_timeout: float | None = None  # Upstream timeout in seconds (None = wait forever)
    prompt_dirs: list[Path] = field(default_factory=list)  # Extra system prompt directories
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EngineConfig:
        """Create config from a dictionary."""
        timeout = data.get("request_timeout")
        return cls(
            streaming=data.get("streaming", True),
            multi_phase_engines=list(data.get("multi_phase_engines", [])),
            request_timeout=float(timeout) if timeout is not None else None,
            prompt_dirs=[Path(p).expanduser() for p in data.get("prompt_dirs", [])],
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> EngineConfig:
        """Load config from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_string(cls, content: str) -> EngineConfig:
        """Load config from a YAML string."""
        data = yaml.safe_load(content)
        return cls.from_dict(data or {})

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary."""
        return {
            "streaming": self.streaming,
            "multi_phase_engines": list(self.multi_phase_engines),
            "request_timeout": self.request_timeout,
            "prompt_dirs": [str(p) for p in self.prompt_dirs],
            "log_level": self.log_level,
        }
