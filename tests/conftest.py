"""Shared pytest fixtures for ai-diagram-engine tests."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import httpx
import pytest

from ai_diagram_engine.config import ServerDefaults
from ai_diagram_engine.models import CanonicalDelta, EffectiveEnvironment, Message, ValidationResult


class FakeUpstream:
    """Async byte stream that records how often it was closed."""

    def __init__(self, chunks: Sequence[bytes], error: Exception | None = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.close_count = 0
        self.reads = 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            self.reads += 1
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.close_count += 1


class ScriptedBackend:
    """Chat backend that replays canned replies and records every call."""

    def __init__(self, replies: Sequence[str], chunk_size: int = 0) -> None:
        self.replies = list(replies)
        self.chunk_size = chunk_size
        self.calls: list[list[Message]] = []
        self.modes: list[str] = []

    def _next(self, messages: Sequence[Message]) -> str:
        self.calls.append(list(messages))
        if not self.replies:
            raise AssertionError("ScriptedBackend ran out of replies")
        return self.replies.pop(0)

    async def chat(self, messages: Sequence[Message]) -> str:
        self.modes.append("chat")
        return self._next(messages)

    async def stream(self, messages: Sequence[Message]) -> AsyncIterator[CanonicalDelta]:
        self.modes.append("stream")
        reply = self._next(messages)
        size = self.chunk_size or len(reply) or 1
        for i in range(0, len(reply), size):
            yield CanonicalDelta(text=reply[i:i + size])


class ScriptedValidator:
    """Validator returning canned results in order; the last one repeats."""

    def __init__(self, results: Sequence[ValidationResult]) -> None:
        self.results = list(results)
        self.payloads: list[str] = []

    async def validate(self, payload: str, engine: str) -> ValidationResult:
        self.payloads.append(payload)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


def sse(*events: Any, done: bool = True) -> bytes:
    """Build a provider SSE body from JSON-serializable events."""
    body = "".join(f"data: {json.dumps(event)}\n\n" for event in events)
    if done:
        body += "data: [DONE]\n\n"
    return body.encode()


def openai_chunk(text: str) -> dict[str, Any]:
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


def anthropic_chunk(text: str) -> dict[str, Any]:
    return {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}


@pytest.fixture
def openai_env() -> EffectiveEnvironment:
    """OpenAI-compatible environment pointing at a fake host."""
    return EffectiveEnvironment(
        provider="openai",
        base_url="https://llm.test/v1",
        api_key="sk-test",
        model_id="gpt-test",
    )


@pytest.fixture
def anthropic_env() -> EffectiveEnvironment:
    """Anthropic environment pointing at a fake host."""
    return EffectiveEnvironment(
        provider="anthropic",
        base_url="https://anthropic.test/v1/",
        api_key="ak-test",
        model_id="claude-test",
    )


@pytest.fixture
def server_defaults() -> ServerDefaults:
    """Server defaults without an access password."""
    return ServerDefaults(
        provider="openai",
        base_url="https://llm.test/v1",
        api_key="sk-server",
        model_id="gpt-server",
    )


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    """Factory for an AsyncClient whose requests are answered by a handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def fake_upstream() -> Callable[..., FakeUpstream]:
    """Factory for FakeUpstream instances."""
    return FakeUpstream


@pytest.fixture
def scripted_backend() -> Callable[..., ScriptedBackend]:
    """Factory for ScriptedBackend instances."""
    return ScriptedBackend


@pytest.fixture
def scripted_validator() -> Callable[..., ScriptedValidator]:
    """Factory for ScriptedValidator instances."""
    return ScriptedValidator


@pytest.fixture
def sse_body() -> Callable[..., bytes]:
    """Builder for provider SSE bodies."""
    return sse


@pytest.fixture
def openai_event() -> Callable[[str], dict[str, Any]]:
    return openai_chunk


@pytest.fixture
def anthropic_event() -> Callable[[str], dict[str, Any]]:
    return anthropic_chunk
