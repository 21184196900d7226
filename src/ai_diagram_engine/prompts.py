"""
Prompt construction for diagram generation.

System prompts live in Markdown files with optional YAML frontmatter, one
per engine. The bundled templates can be overridden by placing files with
the same engine name in extra directories.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml

from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import Attachment, ContentPart, ImagePart, MessageContent, TextPart, is_retained

logger = get_logger("prompts")

BUNDLED_DIR = Path(__file__).parent / "templates"

ENGINE_LABELS = {
    "mermaid": "Mermaid",
    "excalidraw": "Excalidraw",
    "drawio": "Draw.io",
}

Phase = Literal["single", "elements", "links"]


@dataclass
class PromptTemplate:
    """A system prompt loaded from a .md file."""

    engine: str  # frontmatter "engine", else the filename stem
    content: str  # template body after frontmatter
    description: str = ""
    file_path: Path = field(default_factory=lambda: Path())


class SystemPromptLoader:
    """
    Discovers system prompt templates.

    Bundled templates load first; later directories override earlier ones
    engine by engine.
    """

    def __init__(self, extra_dirs: Sequence[Path] | None = None) -> None:
        self.dirs = [BUNDLED_DIR]
        if extra_dirs:
            self.dirs.extend(Path(d) for d in extra_dirs)

    def load_all(self) -> dict[str, PromptTemplate]:
        """Load templates from every directory, keyed by engine."""
        templates: dict[str, PromptTemplate] = {}
        for directory in self.dirs:
            if not directory.is_dir():
                continue
            for md_file in sorted(directory.glob("*.md")):
                template = self.load_template(md_file)
                if template is None:
                    continue
                if template.engine in templates:
                    logger.debug("Overriding %s system prompt with %s", template.engine, md_file)
                templates[template.engine] = template
        return templates

    def load_template(self, path: Path) -> PromptTemplate | None:
        """Load a single template from a .md file."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError:
            return None

        engine = path.stem
        description = ""
        content = text.strip()

        if text.startswith("---"):
            parts = text.split("---", 2)
            if len(parts) >= 3:
                content = parts[2].strip()
                try:
                    frontmatter = yaml.safe_load(parts[1]) or {}
                except yaml.YAMLError:
                    logger.warning("Ignoring malformed frontmatter in %s", path)
                    frontmatter = {}
                if isinstance(frontmatter, dict):
                    engine = str(frontmatter.get("engine") or engine)
                    description = str(frontmatter.get("description") or "")

        if not content:
            return None
        return PromptTemplate(
            engine=engine,
            content=content,
            description=description,
            file_path=path,
        )


def load_system_prompts(extra_dirs: Sequence[Path] | None = None) -> dict[str, str]:
    """System prompt text per engine."""
    return {
        engine: template.content
        for engine, template in SystemPromptLoader(extra_dirs).load_all().items()
    }


# ---------------------------------------------------------------------------
# User prompts
# ---------------------------------------------------------------------------


def build_initial_prompt(
    user_input: str,
    phase: Phase = "single",
    elements: str | None = None,
) -> str:
    """Prompt for a new diagram, optionally one step of a two-phase build."""
    if phase == "elements":
        return (
            "Create a diagram for the request below. This is step 1 of 2: "
            "output only the nodes/shapes with their labels and positions. "
            "Do not draw any connections yet.\n\n"
            f"Request:\n{user_input}"
        )
    if phase == "links":
        return (
            "Step 2 of 2. These are the elements from step 1 "
            "(the attached image shows how they are laid out):\n"
            f"```\n{elements or ''}\n```\n\n"
            "Now add the connections between them. Return the complete diagram, "
            "including every element from step 1 unchanged plus the connections.\n\n"
            f"Request:\n{user_input}"
        )
    return f"Create a diagram for the following request:\n\n{user_input}"


def build_edit_prompt(current_code: str, user_input: str) -> str:
    """Prompt for modifying an existing diagram."""
    return (
        "Here is the current diagram source:\n"
        f"```\n{current_code}\n```\n\n"
        f"Apply this change: {user_input}\n\n"
        "Return the complete updated diagram."
    )


def build_fix_prompt(code: str, error: str, engine: str = "mermaid") -> str:
    """Prompt asking the model to repair code the validator rejected."""
    label = ENGINE_LABELS.get(engine, engine)
    return (
        f"Fix the error in the following {label} code and return only the corrected code.\n"
        f'Error: """{error}"""\n'
        f'Current code: """{code}"""'
    )


def build_multimodal_content(
    text: str,
    attachments: Sequence[Attachment] | None = None,
    current_thumbnail: str | None = None,
) -> MessageContent:
    """
    Combine prompt text with attachments and an optional diagram thumbnail.

    Plain text is returned unchanged when there is nothing to attach.
    Otherwise the thumbnail comes first, then the text, then attachments in
    order; documents and URLs contribute their extracted text.
    """
    has_thumbnail = bool(current_thumbnail and current_thumbnail.strip())
    if not attachments and not has_thumbnail:
        return text

    parts: list[ContentPart] = []
    if has_thumbnail:
        parts.append(ImagePart(url=current_thumbnail or ""))
    parts.append(TextPart(text=text))

    for attachment in attachments or ():
        if attachment.kind == "image":
            parts.append(ImagePart(url=attachment.data_url))
        elif attachment.kind == "document":
            parts.append(
                TextPart(text=f"\n\n[Document: {attachment.file_name}]\n{attachment.content}")
            )
        elif attachment.kind == "url":
            parts.append(TextPart(text=f"\n\n[URL: {attachment.title}]\n{attachment.content}"))
        else:
            logger.warning("Ignoring attachment of unknown kind %r", attachment.kind)

    return tuple(p for p in parts if is_retained(p))
