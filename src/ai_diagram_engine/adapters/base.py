"""
Base provider adapter interface.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import httpx

from ai_diagram_engine.errors import ConfigurationError, UpstreamTransportError
from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import EffectiveEnvironment, Message

logger = get_logger("adapters")

# Both providers are asked for the same generous completion ceiling
MAX_TOKENS = 64000


def dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
        elif not isinstance(current, dict):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
        if current is None:
            return None
    return current


class UpstreamStream:
    """
    Raw provider SSE bytes from an open streaming response.

    Iterating yields byte chunks exactly as they arrive from the network.
    ``aclose()`` releases the response (and the HTTP client when the stream
    owns it); it is safe to call more than once.
    """

    def __init__(
        self,
        response: httpx.Response,
        client: httpx.AsyncClient | None = None,
        provider: str = "",
    ) -> None:
        self.response = response
        self.provider = provider
        self._client = client
        self._iterator: Any = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> UpstreamStream:
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        if self._iterator is None:
            self._iterator = self.response.aiter_bytes()
        try:
            return await self._iterator.__anext__()
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(
                f"{self.provider or 'Upstream'} stream read failed: {exc}",
                provider=self.provider,
            ) from exc

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.response.aclose()
        finally:
            if self._client is not None:
                await self._client.aclose()
        logger.debug("Released %s upstream stream", self.provider or "upstream")


class ProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    An adapter translates canonical messages into one provider's wire format
    and back. Adapters hold no per-request state: the same instance can serve
    concurrent calls with different environments.

    Subclasses describe the wire format; the base class owns the HTTP
    exchange and its error mapping. Example:

        class MyAdapter(ProviderAdapter):
            name = "mine"
            label = "Mine"

            def endpoint(self, env):
                return f"{env.base_url}/generate"

            def build_headers(self, env):
                return {"Authorization": f"Token {env.api_key}"}

            def build_payload(self, messages, env, stream):
                return {"prompt": messages[-1].text, "stream": stream}

            def parse_response(self, data):
                return dig(data, "output") or ""

            def extract_delta(self, event):
                return dig(event, "delta")
    """

    name: str = ""
    label: str = ""  # Human-readable name used in error messages

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        max_tokens: int = MAX_TOKENS,
    ) -> None:
        self.http_client = http_client
        self.timeout = timeout
        self.max_tokens = max_tokens

    # -- wire format --------------------------------------------------------

    @abstractmethod
    def endpoint(self, env: EffectiveEnvironment) -> str:
        """Full URL of the completion endpoint."""

    @abstractmethod
    def build_headers(self, env: EffectiveEnvironment) -> dict[str, str]:
        """Authentication and protocol headers."""

    @abstractmethod
    def build_payload(
        self,
        messages: Sequence[Message],
        env: EffectiveEnvironment,
        stream: bool,
    ) -> dict[str, Any]:
        """Request body for the provider."""

    @abstractmethod
    def parse_response(self, data: Any) -> str:
        """Text of a non-streaming response; empty string if absent."""

    @abstractmethod
    def extract_delta(self, event: Any) -> str | None:
        """Text delta carried by one decoded SSE event, if any."""

    # -- HTTP exchange ------------------------------------------------------

    async def chat(self, messages: Sequence[Message], env: EffectiveEnvironment) -> str:
        """
        Send a blocking completion request.

        Raises:
            ConfigurationError: If the environment has no API key
            UpstreamTransportError: On non-2xx responses or network failure
        """
        request_kwargs = self._request_kwargs(messages, env, stream=False)
        client, owned = self._acquire_client()
        try:
            response = await client.post(**request_kwargs)
            if not response.is_success:
                raise self._status_error(response.status_code, response.text)
            try:
                data = response.json()
            except json.JSONDecodeError as exc:
                raise UpstreamTransportError(
                    f"{self.label} API returned invalid JSON: {exc}",
                    provider=self.name,
                    status_code=response.status_code,
                    body=response.text,
                ) from exc
        except httpx.HTTPError as exc:
            raise self._network_error(exc) from exc
        finally:
            if owned:
                await client.aclose()

        content = self.parse_response(data)
        logger.debug("%s chat complete: %d chars", self.label, len(content))
        return content

    async def stream_chat(
        self, messages: Sequence[Message], env: EffectiveEnvironment
    ) -> UpstreamStream:
        """
        Open a streaming completion request.

        Status is checked before returning, so upstream errors surface here
        rather than midway through iteration.

        Raises:
            ConfigurationError: If the environment has no API key
            UpstreamTransportError: On non-2xx responses or network failure
        """
        request_kwargs = self._request_kwargs(messages, env, stream=True)
        client, owned = self._acquire_client()
        request = client.build_request("POST", **request_kwargs)
        try:
            response = await client.send(request, stream=True)
            if not response.is_success:
                try:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                finally:
                    await response.aclose()
                raise self._status_error(response.status_code, body)
        except httpx.HTTPError as exc:
            if owned:
                await client.aclose()
            raise self._network_error(exc) from exc
        except BaseException:
            if owned:
                await client.aclose()
            raise

        logger.debug("%s stream opened (status %d)", self.label, response.status_code)
        return UpstreamStream(response, client if owned else None, provider=self.name)

    # -- helpers ------------------------------------------------------------

    def _request_kwargs(
        self,
        messages: Sequence[Message],
        env: EffectiveEnvironment,
        stream: bool,
    ) -> dict[str, Any]:
        if not env.api_key:
            raise ConfigurationError("AI_API_KEY not configured")
        url = self.endpoint(env)
        logger.debug(
            "POST %s (model=%s, stream=%s, %d messages)",
            url, env.model_id, stream, len(messages),
        )
        return {
            "url": url,
            "headers": self.build_headers(env),
            "json": self.build_payload(messages, env, stream),
        }

    def _acquire_client(self) -> tuple[httpx.AsyncClient, bool]:
        if self.http_client is not None:
            return self.http_client, False
        return httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)), True

    def _status_error(self, status_code: int, body: str) -> UpstreamTransportError:
        logger.warning("%s API returned HTTP %d", self.label, status_code)
        return UpstreamTransportError(
            f"{self.label} API error: {body}",
            provider=self.name,
            status_code=status_code,
            body=body,
        )

    def _network_error(self, exc: httpx.HTTPError) -> UpstreamTransportError:
        logger.warning("%s request failed: %s", self.label, exc)
        return UpstreamTransportError(
            f"{self.label} API request failed: {exc}",
            provider=self.name,
        )

    @staticmethod
    def base(env: EffectiveEnvironment) -> str:
        return env.base_url.rstrip("/")
