"""Tests for configuration models."""

from pathlib import Path
from textwrap import dedent

from ai_diagram_engine.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL_ID,
    EngineConfig,
    LLMOverride,
    ServerDefaults,
)


class TestServerDefaults:
    """Tests for ServerDefaults."""

    def test_from_env(self) -> None:
        """Should read every AI_* variable."""
        defaults = ServerDefaults.from_env({
            "AI_PROVIDER": "anthropic",
            "AI_BASE_URL": "https://api.anthropic.com/v1",
            "AI_API_KEY": "ak-1",
            "AI_MODEL_ID": "claude-x",
            "ACCESS_PASSWORD": "pw",
        })

        assert defaults.provider == "anthropic"
        assert defaults.base_url == "https://api.anthropic.com/v1"
        assert defaults.api_key == "ak-1"
        assert defaults.model_id == "claude-x"
        assert defaults.access_password == "pw"

    def test_from_env_defaults(self) -> None:
        """Missing or empty variables fall back to defaults."""
        defaults = ServerDefaults.from_env({"AI_PROVIDER": "", "ACCESS_PASSWORD": ""})

        assert defaults.provider == "openai"
        assert defaults.base_url == DEFAULT_BASE_URL
        assert defaults.model_id == DEFAULT_MODEL_ID
        assert defaults.api_key == ""
        assert defaults.access_password is None

    def test_to_environment(self) -> None:
        """Should drop the access password."""
        env = ServerDefaults(api_key="k", access_password="pw").to_environment()

        assert env.api_key == "k"
        assert not hasattr(env, "access_password")


class TestLLMOverride:
    """Tests for LLMOverride parsing."""

    def test_from_camel_case(self) -> None:
        """Should parse the wire keys."""
        override = LLMOverride.from_dict({
            "provider": "anthropic",
            "baseUrl": "https://a.test",
            "apiKey": "k",
            "modelId": "m",
        })

        assert override == LLMOverride("anthropic", "https://a.test", "k", "m")

    def test_from_snake_case(self) -> None:
        """Snake case keys are accepted too."""
        override = LLMOverride.from_dict({"api_key": "k", "model_id": "m"})

        assert override is not None
        assert override.api_key == "k"
        assert override.model_id == "m"
        assert override.provider is None

    def test_empty_input(self) -> None:
        """Empty or non-dict input yields no override."""
        assert LLMOverride.from_dict(None) is None
        assert LLMOverride.from_dict({}) is None
        assert LLMOverride.from_dict("apiKey") is None  # type: ignore[arg-type]

    def test_to_dict_omits_unset(self) -> None:
        """Round-trips to wire keys without empty fields."""
        assert LLMOverride(api_key="k").to_dict() == {"apiKey": "k"}


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self) -> None:
        """Default config streams, single phase, no timeout."""
        config = EngineConfig()

        assert config.streaming is True
        assert config.multi_phase_engines == []
        assert config.request_timeout is None
        assert config.log_level == "INFO"

    def test_from_yaml_string(self) -> None:
        """Should load every field from YAML."""
        config = EngineConfig.from_yaml_string(dedent("""
            streaming: false
            multi_phase_engines:
              - excalidraw
            request_timeout: 90
            prompt_dirs:
              - /tmp/prompts
            log_level: debug
        """))

        assert config.streaming is False
        assert config.multi_phase_engines == ["excalidraw"]
        assert config.request_timeout == 90.0
        assert config.prompt_dirs == [Path("/tmp/prompts")]
        assert config.log_level == "DEBUG"

    def test_from_yaml_file(self, tmp_path: Path) -> None:
        """Should load from a file; an empty file gives defaults."""
        path = tmp_path / "engine.yaml"
        path.write_text("")

        assert EngineConfig.from_yaml(path) == EngineConfig()

    def test_to_dict_round_trip(self) -> None:
        """to_dict output is accepted by from_dict."""
        config = EngineConfig(streaming=False, multi_phase_engines=["drawio"], request_timeout=5)

        assert EngineConfig.from_dict(config.to_dict()) == config
