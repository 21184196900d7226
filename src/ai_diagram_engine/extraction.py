"""
Recover the diagram payload from free-form model output.

Models wrap the payload in prose and Markdown fences despite being told
not to. Extraction prefers a fenced block (matching the engine's language
when there are several), then falls back to engine-specific scanning.
Running it on its own output returns the output unchanged.
"""

from __future__ import annotations

import json
import re

MERMAID_DIAGRAM_TYPES: tuple[str, ...] = (
    "flowchart",
    "graph",
    "sequenceDiagram",
    "classDiagram",
    "stateDiagram-v2",
    "stateDiagram",
    "erDiagram",
    "journey",
    "gantt",
    "pie",
    "quadrantChart",
    "requirementDiagram",
    "gitGraph",
    "C4Context",
    "C4Container",
    "C4Component",
    "C4Dynamic",
    "C4Deployment",
    "mindmap",
    "timeline",
    "zenuml",
    "sankey-beta",
    "xychart-beta",
    "block-beta",
    "packet-beta",
    "kanban",
    "architecture-beta",
)

FENCE_LANGUAGES: dict[str, tuple[str, ...]] = {
    "mermaid": ("mermaid", "mmd"),
    "excalidraw": ("json", "excalidraw"),
    "drawio": ("xml", "drawio", "mxfile"),
}

_FENCE = "```"
_BLOCK_RE = re.compile(r"```([^\n`]*)\n(.*?)```", re.DOTALL)
_XML_ROOTS = ("mxfile", "mxGraphModel")


def _fenced_payload(text: str, engine: str) -> str | None:
    blocks = _BLOCK_RE.findall(text)
    if blocks:
        wanted = FENCE_LANGUAGES.get(engine, ())
        for lang, body in blocks:
            if lang.strip().lower() in wanted:
                return body
        return blocks[0][1]

    start = text.find(_FENCE)
    if start == -1:
        return None
    # Opening fence without a closing one: the stream is still arriving
    newline = text.find("\n", start)
    if newline == -1:
        return ""
    return text[newline + 1:]


def _is_scene(value: object) -> bool:
    if isinstance(value, dict):
        return True
    return isinstance(value, list) and bool(value) and all(isinstance(v, dict) for v in value)


def _json_span(text: str) -> str:
    starts = [i for i, char in enumerate(text) if char in "{["]
    if not starts:
        return text
    decoder = json.JSONDecoder()
    for start in starts:
        try:
            value, end = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            continue
        if _is_scene(value):
            return text[start:end]

    # No complete scene yet (still streaming): widest span from the first opener
    start = starts[0]
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end < start:
        return text[start:]
    return text[start:end + 1]


def _xml_span(text: str) -> str:
    for root in _XML_ROOTS:
        start = text.find(f"<{root}")
        if start == -1:
            continue
        closing = f"</{root}>"
        end = text.rfind(closing)
        if end < start:
            return text[start:]
        return text[start:end + len(closing)]
    return text


def is_mermaid_header(line: str) -> bool:
    """Whether a line opens a Mermaid diagram (type keyword, directive or frontmatter)."""
    stripped = line.strip()
    if stripped.startswith("%%") or stripped == "---":
        return True
    first = stripped.split(maxsplit=1)[0] if stripped else ""
    return first in MERMAID_DIAGRAM_TYPES


def _mermaid_span(text: str) -> str:
    lines = text.splitlines()
    for index, line in enumerate(lines):
        if is_mermaid_header(line):
            return "\n".join(lines[index:])
    return text


def extract_code(raw_text: str, engine: str) -> str:
    """
    Extract the diagram source the target engine expects.

    Args:
        raw_text: Accumulated model output (complete or still streaming)
        engine: "mermaid", "excalidraw" or "drawio"

    Returns:
        The stripped payload; best-effort when the output is incomplete
    """
    text = (raw_text or "").strip()
    if not text:
        return ""

    fenced = _fenced_payload(text, engine)
    if fenced is not None:
        text = fenced.strip()

    if engine == "excalidraw":
        return _json_span(text).strip()
    if engine == "drawio":
        return _xml_span(text).strip()
    if engine == "mermaid":
        return _mermaid_span(text).strip()
    return text
