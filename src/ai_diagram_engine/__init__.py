"""
AI Diagram Engine - LLM-backed generation of Mermaid, Excalidraw and Draw.io diagrams.

This library turns a natural-language request into validated diagram source.
It talks to OpenAI-compatible and Anthropic endpoints, normalizes their
streaming output into one canonical SSE format, extracts the diagram from
the model's reply and repairs invalid Mermaid output with a bounded
self-heal loop.

Example:
    from ai_diagram_engine import (
        GenerationOrchestrator,
        GenerationRequest,
        LocalChatBackend,
        ServerDefaults,
    )

    orchestrator = GenerationOrchestrator(LocalChatBackend(ServerDefaults.from_env()))
    result = await orchestrator.generate(
        GenerationRequest(user_input="User login flow", engine="mermaid"),
        progress=lambda event: print(event.label),
    )
    print(result.payload)
"""

from ai_diagram_engine.adapters import (
    MAX_TOKENS,
    AdapterRegistry,
    AnthropicAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    UpstreamStream,
    get_adapter,
)
from ai_diagram_engine.backends import ChatBackend, HttpChatBackend, LocalChatBackend
from ai_diagram_engine.config import EngineConfig, LLMOverride, ServerDefaults
from ai_diagram_engine.environment import (
    AccessCheck,
    ResolvedEnvironment,
    check_access_password,
    quota_exempt,
    resolve_environment,
)
from ai_diagram_engine.errors import (
    ConfigurationError,
    DiagramEngineError,
    DiagramValidationError,
    UpstreamTransportError,
)
from ai_diagram_engine.extraction import extract_code
from ai_diagram_engine.logging import get_logger, setup_logging
from ai_diagram_engine.models import (
    ENGINES,
    Attachment,
    CanonicalDelta,
    EffectiveEnvironment,
    GenerationAttempt,
    GenerationRequest,
    GenerationResult,
    ImagePart,
    Message,
    TextPart,
    ValidationResult,
)
from ai_diagram_engine.orchestrator import GenerationOrchestrator, ProgressEvent, Thumbnailer
from ai_diagram_engine.prompts import (
    build_edit_prompt,
    build_fix_prompt,
    build_initial_prompt,
    build_multimodal_content,
    load_system_prompts,
)
from ai_diagram_engine.streaming import StreamTranscoder, parse_canonical_stream, transcode
from ai_diagram_engine.validation import DiagramValidator, SyntaxValidator

__version__ = "0.1.0"

__all__ = [
    # Adapters
    "MAX_TOKENS",
    "AdapterRegistry",
    "AnthropicAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "UpstreamStream",
    "get_adapter",
    # Backends
    "ChatBackend",
    "HttpChatBackend",
    "LocalChatBackend",
    # Config
    "EngineConfig",
    "LLMOverride",
    "ServerDefaults",
    # Environment
    "AccessCheck",
    "ResolvedEnvironment",
    "check_access_password",
    "quota_exempt",
    "resolve_environment",
    # Errors
    "ConfigurationError",
    "DiagramEngineError",
    "DiagramValidationError",
    "UpstreamTransportError",
    # Extraction
    "extract_code",
    # Logging
    "get_logger",
    "setup_logging",
    # Models
    "ENGINES",
    "Attachment",
    "CanonicalDelta",
    "EffectiveEnvironment",
    "GenerationAttempt",
    "GenerationRequest",
    "GenerationResult",
    "ImagePart",
    "Message",
    "TextPart",
    "ValidationResult",
    # Orchestrator
    "GenerationOrchestrator",
    "ProgressEvent",
    "Thumbnailer",
    # Prompts
    "build_edit_prompt",
    "build_fix_prompt",
    "build_initial_prompt",
    "build_multimodal_content",
    "load_system_prompts",
    # Streaming
    "StreamTranscoder",
    "parse_canonical_stream",
    "transcode",
    # Validation
    "DiagramValidator",
    "SyntaxValidator",
]
