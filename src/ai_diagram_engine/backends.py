"""
Chat backends consumed by the generation orchestrator.

``LocalChatBackend`` talks to the provider directly through an adapter and
the stream transcoder. ``HttpChatBackend`` talks to a deployed instance of
this package's HTTP surface (``POST /api/chat``) and reads its canonical
SSE stream back into deltas.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any, Protocol

import httpx

from ai_diagram_engine.adapters.registry import AdapterRegistry, default_registry
from ai_diagram_engine.config import LLMOverride, ServerDefaults
from ai_diagram_engine.environment import resolve_environment
from ai_diagram_engine.errors import UpstreamTransportError
from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import CanonicalDelta, EffectiveEnvironment, Message
from ai_diagram_engine.streaming.sse import parse_canonical_stream
from ai_diagram_engine.streaming.transcoder import StreamTranscoder

logger = get_logger("backends")


class ChatBackend(Protocol):
    """What the orchestrator needs from a model backend."""

    async def chat(self, messages: Sequence[Message]) -> str:
        """Return the full completion text."""
        ...

    def stream(self, messages: Sequence[Message]) -> AsyncIterator[CanonicalDelta]:
        """Yield canonical deltas in arrival order."""
        ...


class LocalChatBackend:
    """
    Backend that calls the provider in-process.

    The environment is resolved once, at construction, from the server
    defaults and an optional client override.

    Example:
        backend = LocalChatBackend(ServerDefaults.from_env())
        async for delta in backend.stream(messages):
            print(delta.text, end="")
    """

    def __init__(
        self,
        defaults: ServerDefaults | EffectiveEnvironment,
        override: LLMOverride | None = None,
        registry: AdapterRegistry | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        resolved = resolve_environment(defaults, override)
        self.environment = resolved.environment
        self.quota_exempt = resolved.override_exempt
        self.adapter = (registry or default_registry).get(
            self.environment.provider,
            http_client=http_client,
            timeout=timeout,
        )

    async def chat(self, messages: Sequence[Message]) -> str:
        return await self.adapter.chat(messages, self.environment)

    async def stream(self, messages: Sequence[Message]) -> AsyncIterator[CanonicalDelta]:
        upstream = await self.adapter.stream_chat(messages, self.environment)
        transcoder = StreamTranscoder(upstream, self.adapter)
        async with aclosing(transcoder.deltas()) as deltas:
            async for delta in deltas:
                yield delta


class HttpChatBackend:
    """
    Backend that calls a remote ``/api/chat`` endpoint.

    ``last_quota_exempt`` records the ``X-Quota-Exempt`` header of the most
    recent response so callers can decide whether to count the request.
    """

    def __init__(
        self,
        base_url: str,
        access_password: str | None = None,
        override: LLMOverride | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.url = f"{base_url.rstrip('/')}/api/chat"
        self.access_password = access_password
        self.override = override
        self.http_client = http_client
        self.timeout = timeout
        self.last_quota_exempt: bool | None = None

    def _body(self, messages: Sequence[Message], stream: bool) -> dict[str, Any]:
        body: dict[str, Any] = {
            "messages": [m.to_dict() for m in messages],
            "stream": stream,
        }
        if self.override is not None:
            llm_config = self.override.to_dict()
            if llm_config:
                body["llmConfig"] = llm_config
        return body

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_password:
            headers["X-Access-Password"] = self.access_password
        return headers

    def _client(self) -> tuple[httpx.AsyncClient, bool]:
        if self.http_client is not None:
            return self.http_client, False
        return httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)), True

    def _record_exemption(self, response: httpx.Response) -> None:
        self.last_quota_exempt = response.headers.get("X-Quota-Exempt", "").lower() == "true"

    @staticmethod
    def _error(status_code: int, body: str) -> UpstreamTransportError:
        message = body
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict) and data.get("error"):
            message = str(data["error"])
        logger.warning("Chat endpoint returned HTTP %d: %s", status_code, message)
        return UpstreamTransportError(message, status_code=status_code, body=body)

    async def chat(self, messages: Sequence[Message]) -> str:
        client, owned = self._client()
        try:
            response = await client.post(
                self.url, headers=self._headers(), json=self._body(messages, stream=False)
            )
            self._record_exemption(response)
            if not response.is_success:
                raise self._error(response.status_code, response.text)
            data = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"Chat request failed: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise UpstreamTransportError(f"Chat endpoint returned invalid JSON: {exc}") from exc
        finally:
            if owned:
                await client.aclose()
        content = data.get("content") if isinstance(data, dict) else None
        return content if isinstance(content, str) else ""

    async def stream(self, messages: Sequence[Message]) -> AsyncIterator[CanonicalDelta]:
        client, owned = self._client()
        try:
            async with client.stream(
                "POST", self.url, headers=self._headers(), json=self._body(messages, stream=True)
            ) as response:
                self._record_exemption(response)
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise self._error(response.status_code, body)
                async with aclosing(parse_canonical_stream(response.aiter_bytes())) as deltas:
                    async for delta in deltas:
                        yield delta
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(f"Chat stream failed: {exc}") from exc
        finally:
            if owned:
                await client.aclose()
