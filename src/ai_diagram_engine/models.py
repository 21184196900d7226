"""
Core data models for the generation pipeline.

Every object here lives for a single generation call. Messages and
environments are frozen once built; nothing is persisted by this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

EngineType = Literal["mermaid", "excalidraw", "drawio"]
ENGINES: tuple[str, ...] = ("mermaid", "excalidraw", "drawio")

Provider = Literal["openai", "anthropic"]
PROVIDERS: tuple[str, ...] = ("openai", "anthropic")

Role = Literal["system", "user", "assistant"]
ROLES: tuple[str, ...] = ("system", "user", "assistant")


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextPart:
    """A text fragment of a multimodal message."""

    text: str
    type: str = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    """An image reference: a remote URL or a ``data:`` URI."""

    url: str
    type: str = "image_url"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url}}


ContentPart = Union[TextPart, ImagePart]
MessageContent = Union[str, tuple[ContentPart, ...]]


def is_retained(part: ContentPart) -> bool:
    """Whether a part carries non-empty text or a usable image reference."""
    if isinstance(part, TextPart):
        return bool(part.text)
    return bool(part.url)


def content_part_from_dict(data: dict[str, Any]) -> ContentPart | None:
    """Parse an OpenAI-style content part; returns None for unusable parts."""
    part_type = data.get("type")
    part: ContentPart | None = None
    if part_type == "text":
        part = TextPart(text=data.get("text") or "")
    elif part_type == "image_url":
        image_url = data.get("image_url") or {}
        url = image_url.get("url", "") if isinstance(image_url, dict) else ""
        part = ImagePart(url=url or "")
    if part is None or not is_retained(part):
        return None
    return part


@dataclass(frozen=True)
class Message:
    """A chat message in canonical (OpenAI-compatible) form."""

    role: str  # "system", "user", "assistant"
    content: MessageContent

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")
        if isinstance(self.content, list):
            object.__setattr__(self, "content", tuple(self.content))

    @property
    def text(self) -> str:
        """Concatenated text content, ignoring images."""
        if isinstance(self.content, str):
            return self.content
        return "".join(p.text for p in self.content if isinstance(p, TextPart))

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {"role": self.role, "content": [p.to_dict() for p in self.content]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Create a message from its wire form.

        Raises:
            ValueError: If the role is unknown or content has the wrong shape
        """
        if not isinstance(data, dict):
            raise ValueError("Message must be an object")
        content = data.get("content", "")
        if content is None:
            content = ""
        if isinstance(content, list):
            parts = []
            for raw in content:
                if not isinstance(raw, dict):
                    raise ValueError("Content parts must be objects")
                part = content_part_from_dict(raw)
                if part is not None:
                    parts.append(part)
            return cls(role=data.get("role", ""), content=tuple(parts))
        if not isinstance(content, str):
            raise ValueError("Message content must be a string or a list of parts")
        return cls(role=data.get("role", ""), content=content)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EffectiveEnvironment:
    """Provider, endpoint and credentials for one request."""

    provider: str
    base_url: str
    api_key: str = field(default="", repr=False)
    model_id: str = ""


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


@dataclass
class Attachment:
    """A user attachment fed to the model as multimodal context."""

    kind: str  # "image", "document", "url"
    data_url: str = ""  # image attachments
    file_name: str = ""  # document attachments
    title: str = ""  # url attachments
    content: str = ""  # extracted text for documents and urls


@dataclass
class GenerationRequest:
    """Input to one end-to-end generation call."""

    user_input: str
    engine: str
    is_initial: bool = True
    current_content: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    current_thumbnail: str | None = None  # data URI of the current diagram


@dataclass(frozen=True)
class ValidationResult:
    """Outcome reported by a validator."""

    valid: bool
    error: str | None = None


@dataclass
class GenerationAttempt:
    """One generate-extract-validate round of the self-heal loop."""

    attempt_index: int  # 0 is the initial draft, 1..N are fix attempts
    raw_output: str
    extracted_payload: str
    validation: ValidationResult


@dataclass
class GenerationResult:
    """A validated payload plus the attempts that produced it."""

    payload: str
    attempts: list[GenerationAttempt] = field(default_factory=list)

    @property
    def fix_attempts(self) -> int:
        return max(0, len(self.attempts) - 1)


@dataclass(frozen=True)
class CanonicalDelta:
    """Provider-agnostic incremental text chunk."""

    text: str
