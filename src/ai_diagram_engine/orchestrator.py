"""
Generation orchestrator: the draft, extract, validate and self-heal loop.

One ``generate()`` call walks

    Drafting -> Streaming (optional) -> Extracting -> Validating
        -> Done | FixAttempt(k) -> ... -> Done | Failed

and returns a validated payload or raises a single terminal error. Nothing
is retained between calls.

Example:
    orchestrator = GenerationOrchestrator(
        LocalChatBackend(ServerDefaults.from_env()),
        SyntaxValidator(),
    )
    result = await orchestrator.generate(
        GenerationRequest(user_input="Login flow", engine="mermaid"),
        progress=lambda event: print(event.label),
    )
    print(result.payload)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from contextlib import aclosing
from dataclasses import dataclass
from typing import Protocol

from ai_diagram_engine.backends import ChatBackend
from ai_diagram_engine.errors import DiagramValidationError
from ai_diagram_engine.extraction import extract_code
from ai_diagram_engine.logging import get_logger
from ai_diagram_engine.models import (
    ENGINES,
    GenerationAttempt,
    GenerationRequest,
    GenerationResult,
    Message,
    ValidationResult,
)
from ai_diagram_engine.prompts import (
    build_edit_prompt,
    build_fix_prompt,
    build_initial_prompt,
    build_multimodal_content,
    load_system_prompts,
)
from ai_diagram_engine.validation import DiagramValidator, SyntaxValidator

logger = get_logger("orchestrator")


# Phase names reported through the progress callback
DRAFTING = "drafting"
STREAMING = "streaming"
EXTRACTING = "extracting"
VALIDATING = "validating"
FIXING = "fixing"
DONE = "done"
FAILED = "failed"


@dataclass(frozen=True)
class ProgressEvent:
    """Advisory progress notification."""

    phase: str
    label: str  # human-readable, e.g. "Phase 1/2: Generating elements..."
    text: str = ""  # accumulated model output while streaming
    attempt: int = 0  # fix attempt number, 0 outside the self-heal loop


ProgressCallback = Callable[[ProgressEvent], "Awaitable[None] | None"]


class Thumbnailer(Protocol):
    """Renders a payload to an image data URI for multimodal context."""

    async def render(self, payload: str, engine: str) -> str | None:
        ...


class GenerationOrchestrator:
    """
    Drive one diagram generation end to end.

    Only engines in ``AUTO_REPAIR_ENGINES`` get the self-heal loop; for the
    rest an invalid payload is a terminal error straight away.
    """

    MAX_FIX_ATTEMPTS = 3
    AUTO_REPAIR_ENGINES = frozenset({"mermaid"})

    def __init__(
        self,
        backend: ChatBackend,
        validator: DiagramValidator | None = None,
        *,
        system_prompts: Mapping[str, str] | None = None,
        streaming: bool = True,
        multi_phase_engines: Iterable[str] = (),
        thumbnailer: Thumbnailer | None = None,
    ) -> None:
        self.backend = backend
        self.validator = validator or SyntaxValidator()
        self.system_prompts = dict(
            system_prompts if system_prompts is not None else load_system_prompts()
        )
        self.streaming = streaming
        self.multi_phase_engines = frozenset(multi_phase_engines)
        self.thumbnailer = thumbnailer

    async def generate(
        self,
        request: GenerationRequest,
        progress: ProgressCallback | None = None,
    ) -> GenerationResult:
        """
        Generate (or edit) a diagram and return the validated payload.

        Raises:
            ValueError: If the engine is unknown
            ConfigurationError: If no API key is available
            UpstreamTransportError: If the provider call fails
            DiagramValidationError: If the output stays invalid
        """
        engine = request.engine
        if engine not in ENGINES:
            raise ValueError(f"Unknown engine: {engine!r}")

        run = _Run(progress)
        system_prompt = self.system_prompts.get(engine, "")

        await run.notify(DRAFTING, "Drafting prompt...")
        if not request.is_initial:
            raw = await self._edit(request, system_prompt, run)
        elif engine in self.multi_phase_engines:
            raw = await self._two_phase(request, system_prompt, run)
        else:
            raw = await self._single_phase(request, system_prompt, run)

        attempt = await self._check(0, raw, engine, run)
        attempts = [attempt]

        if not attempt.validation.valid and engine in self.AUTO_REPAIR_ENGINES:
            for k in range(1, self.MAX_FIX_ATTEMPTS + 1):
                previous = attempts[-1]
                error = previous.validation.error or "Unknown error"
                label = f"Fixing errors (attempt {k}/{self.MAX_FIX_ATTEMPTS})..."
                logger.info("%s payload invalid, fix attempt %d: %s", engine, k, error)
                await run.notify(FIXING, f"{label}\nError: {error}", attempt=k)

                messages = self._messages(
                    system_prompt,
                    Message(role="user", content=build_fix_prompt(previous.extracted_payload, error, engine)),
                )
                raw = await self._complete(messages, label, run, attempt=k)
                attempts.append(await self._check(k, raw, engine, run))
                if attempts[-1].validation.valid:
                    break

        final = attempts[-1]
        if not final.validation.valid:
            error = final.validation.error or "Unknown error"
            logger.warning(
                "%s generation failed after %d fix attempt(s): %s",
                engine, len(attempts) - 1, error,
            )
            await run.notify(FAILED, f"Invalid {engine} output: {error}")
            raise DiagramValidationError(engine, error, attempts)

        await run.notify(DONE, "Diagram generated successfully.", final.extracted_payload)
        return GenerationResult(payload=final.extracted_payload, attempts=attempts)

    # -- drafting -----------------------------------------------------------

    @staticmethod
    def _messages(system_prompt: str, *messages: Message) -> list[Message]:
        result = [Message(role="system", content=system_prompt)] if system_prompt else []
        result.extend(messages)
        return result

    async def _single_phase(
        self, request: GenerationRequest, system_prompt: str, run: _Run
    ) -> str:
        content = build_multimodal_content(
            build_initial_prompt(request.user_input), request.attachments
        )
        messages = self._messages(system_prompt, Message(role="user", content=content))
        return await self._complete(messages, "Generating diagram...", run)

    async def _edit(
        self, request: GenerationRequest, system_prompt: str, run: _Run
    ) -> str:
        content = build_multimodal_content(
            build_edit_prompt(request.current_content, request.user_input),
            request.attachments,
            request.current_thumbnail,
        )
        messages = self._messages(system_prompt, Message(role="user", content=content))
        return await self._complete(messages, "Modifying diagram...", run)

    async def _two_phase(
        self, request: GenerationRequest, system_prompt: str, run: _Run
    ) -> str:
        engine = request.engine
        phase1_content = build_multimodal_content(
            build_initial_prompt(request.user_input, "elements"), request.attachments
        )
        phase1_user = Message(role="user", content=phase1_content)
        raw = await self._complete(
            self._messages(system_prompt, phase1_user),
            "Phase 1/2: Generating elements...",
            run,
        )
        elements = extract_code(raw, engine)

        thumbnail = await self._render_thumbnail(elements, engine)
        phase2_content = build_multimodal_content(
            build_initial_prompt(request.user_input, "links", elements),
            request.attachments,
            thumbnail,
        )
        messages = self._messages(
            system_prompt,
            phase1_user,
            Message(role="assistant", content=elements),
            Message(role="user", content=phase2_content),
        )
        return await self._complete(messages, "Phase 2/2: Generating connections...", run)

    async def _render_thumbnail(self, payload: str, engine: str) -> str | None:
        if self.thumbnailer is None or not payload:
            return None
        try:
            return await self.thumbnailer.render(payload, engine)
        except Exception:
            logger.warning("Thumbnail rendering failed for %s elements", engine, exc_info=True)
            return None

    # -- model call, extraction, validation ---------------------------------

    async def _complete(
        self, messages: list[Message], label: str, run: _Run, attempt: int = 0
    ) -> str:
        if not self.streaming:
            await run.notify(DRAFTING, label, attempt=attempt)
            return await self.backend.chat(messages)

        accumulated = ""
        await run.notify(STREAMING, label, attempt=attempt)
        async with aclosing(self.backend.stream(messages)) as deltas:
            async for delta in deltas:
                accumulated += delta.text
                await run.notify(STREAMING, label, accumulated, attempt=attempt)
        return accumulated

    async def _check(
        self, index: int, raw: str, engine: str, run: _Run
    ) -> GenerationAttempt:
        await run.notify(EXTRACTING, "Extracting diagram...", attempt=index)
        payload = extract_code(raw, engine)
        await run.notify(VALIDATING, "Validating diagram...", payload, attempt=index)
        validation: ValidationResult = await self.validator.validate(payload, engine)
        return GenerationAttempt(
            attempt_index=index,
            raw_output=raw,
            extracted_payload=payload,
            validation=validation,
        )


class _Run:
    """Per-call progress reporting; callback failures never reach the caller."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self.callback = callback

    async def notify(self, phase: str, label: str, text: str = "", attempt: int = 0) -> None:
        if self.callback is None:
            return
        try:
            result = self.callback(ProgressEvent(phase=phase, label=label, text=text, attempt=attempt))
            if asyncio.iscoroutine(result) or asyncio.isfuture(result):
                await result
        except Exception:
            logger.warning("Progress callback failed during %s", phase, exc_info=True)
