#!/usr/bin/env python3
"""
AI Diagram Engine Demo

Generates a Mermaid diagram, then edits it, printing progress while the
model streams.

Usage:
    pip install -e .
    export AI_API_KEY=sk-...        # or put it in a .env file
    python examples/generate_demo.py

    # Remote mode: drive a running `diagram-engine serve`
    python examples/generate_demo.py --remote http://127.0.0.1:8080
"""

import asyncio
import sys

from ai_diagram_engine import (
    DiagramEngineError,
    GenerationOrchestrator,
    GenerationRequest,
    HttpChatBackend,
    LocalChatBackend,
    ProgressEvent,
    ServerDefaults,
    setup_logging,
)


def show_progress(event: ProgressEvent) -> None:
    if event.phase == "streaming" and event.text:
        print(f"\r  {event.label} {len(event.text)} chars", end="", flush=True)
    else:
        print(f"\n  [{event.phase}] {event.label}")


async def demo(backend) -> None:
    orchestrator = GenerationOrchestrator(backend)

    print("=" * 60)
    print("Initial generation")
    print("=" * 60)
    result = await orchestrator.generate(
        GenerationRequest(
            user_input="User signs in with email and password; lock the account after 3 failures",
            engine="mermaid",
        ),
        progress=show_progress,
    )
    print(f"\n\n{result.payload}\n")
    if result.fix_attempts:
        print(f"(repaired after {result.fix_attempts} fix attempts)")

    print("=" * 60)
    print("Edit")
    print("=" * 60)
    edited = await orchestrator.generate(
        GenerationRequest(
            user_input="Add a password reset path from the locked state",
            engine="mermaid",
            is_initial=False,
            current_content=result.payload,
        ),
        progress=show_progress,
    )
    print(f"\n\n{edited.payload}\n")


def main() -> None:
    setup_logging("WARNING")
    if len(sys.argv) > 2 and sys.argv[1] == "--remote":
        backend = HttpChatBackend(sys.argv[2])
    else:
        backend = LocalChatBackend(ServerDefaults.from_env())

    try:
        asyncio.run(demo(backend))
    except DiagramEngineError as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
