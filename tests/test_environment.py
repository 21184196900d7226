"""Tests for environment resolution and quota exemption."""

from ai_diagram_engine.config import LLMOverride, ServerDefaults
from ai_diagram_engine.environment import (
    check_access_password,
    quota_exempt,
    resolve_environment,
)
from ai_diagram_engine.models import EffectiveEnvironment


class TestResolveEnvironment:
    """Tests for resolve_environment."""

    def test_no_override_returns_defaults(self, server_defaults: ServerDefaults) -> None:
        """Without an override the server defaults are used unchanged."""
        resolved = resolve_environment(server_defaults)

        assert resolved.environment == server_defaults.to_environment()
        assert resolved.override_exempt is False

    def test_override_without_key_is_ignored(self, server_defaults: ServerDefaults) -> None:
        """An override lacking an API key changes nothing, even other fields."""
        override = LLMOverride(provider="anthropic", base_url="https://other.test", model_id="x")

        resolved = resolve_environment(server_defaults, override)

        assert resolved.environment == server_defaults.to_environment()
        assert resolved.override_exempt is False

    def test_override_with_key_only(self, server_defaults: ServerDefaults) -> None:
        """Only the key comes from the override; other fields fall back individually."""
        resolved = resolve_environment(server_defaults, LLMOverride(api_key="sk-client"))

        env = resolved.environment
        assert env.api_key == "sk-client"
        assert env.provider == "openai"
        assert env.base_url == "https://llm.test/v1"
        assert env.model_id == "gpt-server"
        assert resolved.override_exempt is True

    def test_override_fields_take_precedence(self, server_defaults: ServerDefaults) -> None:
        """Non-empty override fields replace the defaults."""
        override = LLMOverride(
            provider="anthropic",
            base_url="https://anthropic.test/v1",
            api_key="ak-client",
            model_id="claude-client",
        )

        env = resolve_environment(server_defaults, override).environment

        assert env == EffectiveEnvironment(
            provider="anthropic",
            base_url="https://anthropic.test/v1",
            api_key="ak-client",
            model_id="claude-client",
        )

    def test_partial_override(self, server_defaults: ServerDefaults) -> None:
        """Missing fields fall back one by one."""
        override = LLMOverride(api_key="sk-client", model_id="gpt-client")

        env = resolve_environment(server_defaults, override).environment

        assert env.model_id == "gpt-client"
        assert env.base_url == server_defaults.base_url
        assert env.provider == server_defaults.provider

    def test_accepts_effective_environment(self) -> None:
        """Defaults may be given as an EffectiveEnvironment."""
        defaults = EffectiveEnvironment("openai", "https://a.test", "k", "m")

        resolved = resolve_environment(defaults, None)

        assert resolved.environment is defaults

    def test_api_key_not_in_repr(self, server_defaults: ServerDefaults) -> None:
        """Keys never show up in reprs (and therefore in logs)."""
        resolved = resolve_environment(server_defaults, LLMOverride(api_key="sk-secret"))

        assert "sk-secret" not in repr(resolved)
        assert "sk-server" not in repr(server_defaults)


class TestAccessPassword:
    """Tests for check_access_password."""

    def test_no_password_configured(self) -> None:
        """Everything is allowed and nothing exempt when no password is set."""
        check = check_access_password("anything", None)

        assert check.valid is True
        assert check.exempt is False

    def test_matching_password(self) -> None:
        """A matching password is valid and exempt."""
        check = check_access_password("s3cret", "s3cret")

        assert check.valid is True
        assert check.exempt is True

    def test_wrong_password(self) -> None:
        """A wrong password is rejected."""
        check = check_access_password("nope", "s3cret")

        assert check.valid is False
        assert check.exempt is False

    def test_missing_password(self) -> None:
        """Omitting the password is allowed but not exempt."""
        check = check_access_password(None, "s3cret")

        assert check.valid is True
        assert check.exempt is False


class TestQuotaExempt:
    """Tests for the exemption OR."""

    def test_truth_table(self) -> None:
        """Either signal alone exempts the request."""
        assert quota_exempt(False, False) is False
        assert quota_exempt(True, False) is True
        assert quota_exempt(False, True) is True
        assert quota_exempt(True, True) is True

    def test_password_and_override_combined(self, server_defaults: ServerDefaults) -> None:
        """A correct password exempts even without an override, and vice versa."""
        defaults = ServerDefaults(access_password="pw", api_key="sk-server")

        password = check_access_password("pw", defaults.access_password)
        no_override = resolve_environment(defaults)
        assert quota_exempt(password.exempt, no_override.override_exempt) is True

        anonymous = check_access_password(None, defaults.access_password)
        with_override = resolve_environment(defaults, LLMOverride(api_key="sk-client"))
        assert quota_exempt(anonymous.exempt, with_override.override_exempt) is True
