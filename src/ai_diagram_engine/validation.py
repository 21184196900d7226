"""
Diagram syntax validation.

Validators report problems, they never raise for bad input: the
orchestrator feeds the reported error back to the model verbatim.
``SyntaxValidator`` is a dependency-free structural check; hosts with a real
renderer (e.g. the Mermaid parser in a browser) plug in their own
``DiagramValidator``.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Protocol, runtime_checkable

from ai_diagram_engine.extraction import MERMAID_DIAGRAM_TYPES, is_mermaid_header
from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import ValidationResult

logger = get_logger("validation")

_OPENERS = {")": "(", "]": "[>", "}": "{"}


@runtime_checkable
class DiagramValidator(Protocol):
    """Protocol for engine-specific validators."""

    async def validate(self, payload: str, engine: str) -> ValidationResult:
        """Check a payload; report problems instead of raising."""
        ...


def _check_brackets(line: str) -> str | None:
    stack: list[str] = []
    quoted = False
    previous = ""
    for char in line:
        if char == '"':
            quoted = not quoted
        if quoted:
            previous = char
            continue
        if char in "([{":
            stack.append(char)
        elif char == ">" and not stack and (previous.isalnum() or previous == "_"):
            # Asymmetric node shape: id>label]
            stack.append(">")
        elif char in _OPENERS:
            if not stack or stack.pop() not in _OPENERS[char]:
                return f"Unexpected '{char}'"
        previous = char
    if quoted:
        return "Unterminated string"
    if stack:
        return f"Unclosed '{stack[-1]}'"
    return None


def validate_mermaid(payload: str) -> ValidationResult:
    """Check the diagram type header and, for flowcharts, node shape brackets."""
    lines = payload.splitlines()
    body = [(n, line) for n, line in enumerate(lines, 1) if line.strip()]
    if not body:
        return ValidationResult(valid=False, error="Empty diagram")

    in_frontmatter = False
    header_found = False
    check_shapes = False
    for number, line in body:
        stripped = line.strip()
        if stripped == "---":
            in_frontmatter = not in_frontmatter
            continue
        if in_frontmatter or stripped.startswith("%%"):
            continue
        if not header_found:
            if not is_mermaid_header(stripped):
                return ValidationResult(
                    valid=False,
                    error=(
                        f"Parse error on line {number}: unknown diagram type "
                        f"'{stripped.split()[0]}'. Expected one of: "
                        f"{', '.join(MERMAID_DIAGRAM_TYPES[:8])}, ..."
                    ),
                )
            header_found = True
            # Node shapes only exist in flowcharts; other types allow free text
            check_shapes = stripped.split()[0] in ("flowchart", "graph")
            continue
        problem = _check_brackets(stripped) if check_shapes else None
        if problem:
            return ValidationResult(
                valid=False, error=f"Parse error on line {number}: {problem}: {stripped}"
            )

    if in_frontmatter:
        return ValidationResult(valid=False, error="Unterminated frontmatter block")
    if not header_found:
        return ValidationResult(valid=False, error="No diagram definition found")
    return ValidationResult(valid=True)


def validate_excalidraw(payload: str) -> ValidationResult:
    """Accept a JSON element array or an object with an ``elements`` array."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        return ValidationResult(valid=False, error=f"Invalid JSON: {exc}")
    if isinstance(data, dict):
        data = data.get("elements")
    if not isinstance(data, list):
        return ValidationResult(
            valid=False,
            error="Invalid Excalidraw data: expected array or object with elements",
        )
    for index, element in enumerate(data):
        if not isinstance(element, dict) or not element.get("type"):
            return ValidationResult(
                valid=False, error=f"Element {index} is missing a 'type'"
            )
    return ValidationResult(valid=True)


def validate_drawio(payload: str) -> ValidationResult:
    """Accept well-formed XML rooted at ``mxfile`` or ``mxGraphModel``."""
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        return ValidationResult(valid=False, error=f"Invalid XML: {exc}")
    if root.tag not in ("mxfile", "mxGraphModel"):
        return ValidationResult(
            valid=False,
            error=f"Unexpected root element <{root.tag}>, expected <mxfile> or <mxGraphModel>",
        )
    return ValidationResult(valid=True)


class SyntaxValidator:
    """
    Built-in structural validator for all three engines.

    Example:
        result = await SyntaxValidator().validate("graph TD\\nA-->B", "mermaid")
        assert result.valid
    """

    _checks = {
        "mermaid": validate_mermaid,
        "excalidraw": validate_excalidraw,
        "drawio": validate_drawio,
    }

    async def validate(self, payload: str, engine: str) -> ValidationResult:
        check = self._checks.get(engine)
        if check is None:
            return ValidationResult(valid=False, error=f"Unsupported engine: {engine}")
        if not payload.strip():
            return ValidationResult(valid=False, error="Empty diagram")
        result = check(payload)
        if not result.valid:
            logger.debug("%s payload rejected: %s", engine, result.error)
        return result
