"""
Exception hierarchy for the generation pipeline.

Malformed upstream SSE frames are deliberately absent: they are dropped by
the transcoder and never reach callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ai_diagram_engine.models import GenerationAttempt


class DiagramEngineError(Exception):
    """Base class for all errors raised by the diagram engine."""


class ConfigurationError(DiagramEngineError):
    """Raised when the effective environment cannot be used (e.g. no API key)."""


class UpstreamTransportError(DiagramEngineError):
    """Raised for non-2xx provider responses and network failures.

    The upstream response body is kept verbatim in ``body`` and is part of
    the message, so callers can surface the provider's own explanation.
    """

    def __init__(
        self,
        message: str,
        provider: str = "",
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body


class DiagramValidationError(DiagramEngineError):
    """Raised when generated output fails validation and cannot be repaired."""

    def __init__(
        self,
        engine: str,
        error: str,
        attempts: list[GenerationAttempt] | None = None,
    ) -> None:
        super().__init__(f"Invalid {engine} output: {error}")
        self.engine = engine
        self.error = error
        self.attempts = list(attempts or [])
