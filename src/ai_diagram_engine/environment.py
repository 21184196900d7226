"""
Per-request environment resolution and quota-exemption signals.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from ai_diagram_engine.config import ServerDefaults
from ai_diagram_engine.models import EffectiveEnvironment


@dataclass(frozen=True)
class ResolvedEnvironment:
    """The effective environment plus the override-derived exemption."""

    environment: EffectiveEnvironment
    override_exempt: bool = False


@dataclass(frozen=True)
class AccessCheck:
    """Result of checking a request's access password."""

    valid: bool
    exempt: bool


def resolve_environment(
    server_defaults: ServerDefaults | EffectiveEnvironment,
    client_override: object | None = None,
) -> ResolvedEnvironment:
    """
    Merge server defaults with a client override.

    Without an override API key the server defaults are returned unchanged.
    With one, ``provider``, ``base_url`` and ``model_id`` each fall back to
    the server default individually, while the key comes from the override
    only. A usable override exempts the caller from quota accounting.

    Args:
        server_defaults: Server-side provider settings
        client_override: An ``LLMOverride`` (or anything with the same fields)

    Returns:
        ResolvedEnvironment
    """
    if isinstance(server_defaults, ServerDefaults):
        defaults = server_defaults.to_environment()
    else:
        defaults = server_defaults

    api_key = getattr(client_override, "api_key", None) if client_override else None
    if not api_key:
        return ResolvedEnvironment(environment=defaults, override_exempt=False)

    environment = EffectiveEnvironment(
        provider=getattr(client_override, "provider", None) or defaults.provider,
        base_url=getattr(client_override, "base_url", None) or defaults.base_url,
        api_key=api_key,
        model_id=getattr(client_override, "model_id", None) or defaults.model_id,
    )
    return ResolvedEnvironment(environment=environment, override_exempt=True)


def check_access_password(supplied: str | None, configured: str | None) -> AccessCheck:
    """
    Check a request's access password against the configured one.

    - No password configured: every request is valid, none is exempt.
    - Matching password: valid and exempt.
    - Wrong password: invalid.
    - No password supplied: valid, not exempt.
    """
    if not configured:
        return AccessCheck(valid=True, exempt=False)
    if supplied:
        if hmac.compare_digest(supplied.encode(), configured.encode()):
            return AccessCheck(valid=True, exempt=True)
        return AccessCheck(valid=False, exempt=False)
    return AccessCheck(valid=True, exempt=False)


def quota_exempt(password_exempt: bool, override_exempt: bool) -> bool:
    """Combine the two independent exemption signals."""
    return bool(password_exempt) or bool(override_exempt)
