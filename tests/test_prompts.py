"""Tests for prompt construction."""

from pathlib import Path
from textwrap import dedent

from ai_diagram_engine.models import Attachment, ImagePart, TextPart
from ai_diagram_engine.prompts import (
    SystemPromptLoader,
    build_edit_prompt,
    build_fix_prompt,
    build_initial_prompt,
    build_multimodal_content,
    load_system_prompts,
)


class TestSystemPrompts:
    """Tests for system prompt loading."""

    def test_bundled_prompts(self) -> None:
        """Every engine ships a system prompt."""
        prompts = load_system_prompts()

        assert set(prompts) >= {"mermaid", "excalidraw", "drawio"}
        assert all(text.strip() for text in prompts.values())
        assert not prompts["mermaid"].startswith("---")

    def test_override_directory(self, tmp_path: Path) -> None:
        """Templates in extra directories replace bundled ones by engine."""
        (tmp_path / "custom.md").write_text(dedent("""\
            ---
            engine: mermaid
            description: Terse house style
            ---
            Only output Mermaid.
        """))

        prompts = load_system_prompts([tmp_path])

        assert prompts["mermaid"] == "Only output Mermaid."
        assert "excalidraw" in prompts

    def test_engine_from_filename(self, tmp_path: Path) -> None:
        """Without frontmatter the file stem names the engine."""
        path = tmp_path / "drawio.md"
        path.write_text("Use mxGraph XML.\n")

        template = SystemPromptLoader().load_template(path)

        assert template is not None
        assert template.engine == "drawio"
        assert template.content == "Use mxGraph XML."
        assert template.description == ""

    def test_empty_template_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "mermaid.md"
        path.write_text("---\nengine: mermaid\n---\n")

        assert SystemPromptLoader().load_template(path) is None

    def test_missing_directory_ignored(self, tmp_path: Path) -> None:
        prompts = load_system_prompts([tmp_path / "nope"])

        assert "mermaid" in prompts


class TestUserPrompts:
    """Tests for initial, edit and fix prompts."""

    def test_initial_single(self) -> None:
        assert "Login flow" in build_initial_prompt("Login flow")

    def test_two_phase_prompts(self) -> None:
        """Phase 2 embeds the phase 1 elements."""
        elements = build_initial_prompt("Org chart", "elements")
        links = build_initial_prompt("Org chart", "links", "<mxfile/>")

        assert "step 1 of 2" in elements
        assert "Org chart" in elements
        assert "<mxfile/>" in links
        assert "connections" in links

    def test_edit_prompt(self) -> None:
        prompt = build_edit_prompt("graph TD\nA-->B", "add C")

        assert "graph TD\nA-->B" in prompt
        assert "add C" in prompt

    def test_fix_prompt_embeds_error_and_code(self) -> None:
        """The fix prompt carries the invalid code and the error verbatim."""
        prompt = build_fix_prompt("graph TD\nA[-->B", "Parse error on line 2: Unclosed '['")

        assert prompt == (
            "Fix the error in the following Mermaid code and return only the corrected code.\n"
            "Error: \"\"\"Parse error on line 2: Unclosed '['\"\"\"\n"
            'Current code: """graph TD\nA[-->B"""'
        )


class TestMultimodalContent:
    """Tests for build_multimodal_content."""

    def test_plain_text_without_attachments(self) -> None:
        assert build_multimodal_content("hello") == "hello"
        assert build_multimodal_content("hello", [], "  ") == "hello"

    def test_order(self) -> None:
        """Thumbnail first, then text, then attachments in order."""
        content = build_multimodal_content(
            "Edit this",
            [
                Attachment(kind="image", data_url="data:image/png;base64,BBBB"),
                Attachment(kind="document", file_name="brief.pdf", content="Section 1"),
                Attachment(kind="url", title="Docs", content="Page text"),
            ],
            current_thumbnail="data:image/png;base64,AAAA",
        )

        assert content == (
            ImagePart(url="data:image/png;base64,AAAA"),
            TextPart(text="Edit this"),
            ImagePart(url="data:image/png;base64,BBBB"),
            TextPart(text="\n\n[Document: brief.pdf]\nSection 1"),
            TextPart(text="\n\n[URL: Docs]\nPage text"),
        )

    def test_empty_parts_dropped(self) -> None:
        """Images without a URL are not retained."""
        content = build_multimodal_content("x", [Attachment(kind="image", data_url="")])

        assert content == (TextPart(text="x"),)

    def test_unknown_kind_ignored(self) -> None:
        content = build_multimodal_content("x", [Attachment(kind="video")])

        assert content == (TextPart(text="x"),)
