"""HTTP chat surface using Starlette."""
from __future__ import annotations

from typing import Any

try:
    from starlette.applications import Starlette
    from starlette.middleware import Middleware
    from starlette.middleware.cors import CORSMiddleware
    from starlette.requests import Request
    from starlette.responses import JSONResponse, Response, StreamingResponse
    from starlette.routing import Route
except ImportError:
    raise ImportError(
        "The HTTP server requires the 'web' extra. "
        "Install with: pip install ai-diagram-engine[web]"
    )

import httpx

from ai_diagram_engine.adapters.registry import AdapterRegistry, default_registry
from ai_diagram_engine.config import LLMOverride, ServerDefaults
from ai_diagram_engine.environment import check_access_password, quota_exempt, resolve_environment
from ai_diagram_engine.errors import DiagramEngineError
from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import Message
from ai_diagram_engine.streaming.transcoder import transcode

logger = get_logger("web.server")

QUOTA_HEADER = "X-Quota-Exempt"
PASSWORD_HEADER = "X-Access-Password"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(
    defaults: ServerDefaults | None = None,
    registry: AdapterRegistry | None = None,
    http_client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> Starlette:
    """Create the chat Starlette application.

    Args:
        defaults: Server-side provider settings (defaults to ``ServerDefaults.from_env()``)
        registry: Adapter registry used to pick the provider adapter
        http_client: Shared client for upstream calls (one per call if omitted)
        timeout: Upstream request timeout in seconds
    """
    _defaults = defaults or ServerDefaults.from_env()
    _registry = registry or default_registry

    async def api_chat(request: Request) -> Response:
        """Proxy a chat completion, blocking or as canonical SSE."""
        access = check_access_password(
            request.headers.get(PASSWORD_HEADER), _defaults.access_password
        )
        if not access.valid:
            return _error("Invalid access password", 401)

        try:
            body = await request.json()
        except ValueError:
            return _error("Invalid request: body must be JSON", 400)
        if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
            return _error("Invalid request: messages required", 400)
        try:
            messages = [Message.from_dict(m) for m in body["messages"]]
        except ValueError as e:
            return _error(f"Invalid request: {e}", 400)

        resolved = resolve_environment(_defaults, LLMOverride.from_dict(body.get("llmConfig")))
        exempt = quota_exempt(access.exempt, resolved.override_exempt)
        headers = {QUOTA_HEADER: "true" if exempt else "false"}
        env = resolved.environment
        adapter = _registry.get(env.provider, http_client=http_client, timeout=timeout)

        try:
            if body.get("stream", False):
                upstream = await adapter.stream_chat(messages, env)
                return StreamingResponse(
                    transcode(upstream, adapter),
                    media_type="text/event-stream",
                    headers={
                        "Cache-Control": "no-cache",
                        "Connection": "keep-alive",
                        "X-Accel-Buffering": "no",
                        **headers,
                    },
                )
            content = await adapter.chat(messages, env)
        except DiagramEngineError as e:
            logger.exception("Chat error")
            return _error(str(e), 500)

        return JSONResponse({"content": content}, headers=headers)

    async def api_health(request: Request) -> JSONResponse:
        """Liveness probe."""
        return JSONResponse({"status": "ok"})

    routes = [
        Route("/api/chat", api_chat, methods=["POST"]),
        Route("/api/health", api_health, methods=["GET"]),
    ]
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", PASSWORD_HEADER, "X-Custom-LLM"],
            expose_headers=[QUOTA_HEADER],
        )
    ]

    return Starlette(routes=routes, middleware=middleware)


def run_server(
    host: str = "127.0.0.1",
    port: int = 8080,
    defaults: ServerDefaults | None = None,
    timeout: float | None = None,
    **kwargs: Any,
) -> None:
    """Run the HTTP server."""
    try:
        import uvicorn
    except ImportError:
        raise ImportError(
            "Running the web server requires uvicorn. "
            "Install with: pip install ai-diagram-engine[web]"
        )

    app = create_app(defaults=defaults, timeout=timeout)
    uvicorn.run(app, host=host, port=port, **kwargs)
