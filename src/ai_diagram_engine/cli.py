"""
Command-line interface for the diagram engine.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

from rich.console import Console

from ai_diagram_engine.backends import LocalChatBackend
from ai_diagram_engine.config import EngineConfig, ServerDefaults
from ai_diagram_engine.errors import DiagramEngineError, DiagramValidationError
from ai_diagram_engine.logging import setup_logging
from ai_diagram_engine.models import ENGINES, GenerationRequest
from ai_diagram_engine.orchestrator import STREAMING, GenerationOrchestrator, ProgressEvent
from ai_diagram_engine.prompts import load_system_prompts
from ai_diagram_engine.validation import SyntaxValidator

console = Console()
err_console = Console(stderr=True)

# File suffix -> engine, for `validate` without --engine
_SUFFIX_ENGINES = {
    ".mmd": "mermaid",
    ".mermaid": "mermaid",
    ".excalidraw": "excalidraw",
    ".json": "excalidraw",
    ".drawio": "drawio",
    ".xml": "drawio",
}


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="AI Diagram Engine CLI",
        prog="diagram-engine",
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate or edit a diagram")
    gen_parser.add_argument("prompt", help="What to draw, or the change to apply")
    gen_parser.add_argument(
        "-e",
        "--engine",
        choices=ENGINES,
        default="mermaid",
        help="Target diagram engine",
    )
    gen_parser.add_argument(
        "--current-file",
        help="Existing diagram source to edit instead of starting fresh",
    )
    gen_parser.add_argument("--no-stream", action="store_true", help="Use a blocking request")
    gen_parser.add_argument("-c", "--config", help="Engine config YAML file")
    gen_parser.add_argument("--provider", help="Override AI_PROVIDER")
    gen_parser.add_argument("--base-url", help="Override AI_BASE_URL")
    gen_parser.add_argument("--api-key", help="Override AI_API_KEY")
    gen_parser.add_argument("--model", help="Override AI_MODEL_ID")
    gen_parser.add_argument("-o", "--output", help="Write the diagram to this file")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP chat server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("-p", "--port", type=int, default=8080, help="Port")
    serve_parser.add_argument("-t", "--timeout", type=float, help="Upstream timeout in seconds")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Check a diagram file's syntax")
    validate_parser.add_argument("file", help="Diagram source file")
    validate_parser.add_argument(
        "-e",
        "--engine",
        choices=ENGINES,
        help="Diagram engine (guessed from the file suffix if omitted)",
    )

    args = parser.parse_args(argv)

    # Setup logging based on verbosity
    if getattr(args, "verbose", False):
        setup_logging("DEBUG")
    else:
        setup_logging("WARNING")

    if args.command == "generate":
        asyncio.run(cmd_generate(args))
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "validate":
        asyncio.run(cmd_validate(args))
    else:
        parser.print_help()


def _load_config(path: str | None) -> EngineConfig:
    if not path:
        return EngineConfig()
    config_path = Path(path)
    if not config_path.exists():
        err_console.print(f"[red]Config file not found: {config_path}[/red]")
        sys.exit(1)
    return EngineConfig.from_yaml(config_path)


def _create_orchestrator(args: argparse.Namespace, config: EngineConfig) -> GenerationOrchestrator:
    """Create an orchestrator from CLI args."""
    defaults = ServerDefaults.from_env()
    # Flags replace the local defaults; they are not a client override
    defaults = replace(
        defaults,
        provider=args.provider or defaults.provider,
        base_url=args.base_url or defaults.base_url,
        api_key=args.api_key or defaults.api_key,
        model_id=args.model or defaults.model_id,
    )
    backend = LocalChatBackend(defaults, timeout=config.request_timeout)
    return GenerationOrchestrator(
        backend,
        SyntaxValidator(),
        system_prompts=load_system_prompts(config.prompt_dirs),
        streaming=config.streaming and not args.no_stream,
        multi_phase_engines=config.multi_phase_engines,
    )


async def cmd_generate(args: argparse.Namespace) -> None:
    """Generate a diagram and print (or save) its source."""
    config = _load_config(args.config)
    if args.config and not args.verbose:
        setup_logging(config.log_level, stream=sys.stderr)

    current = ""
    if args.current_file:
        current_path = Path(args.current_file)
        if not current_path.exists():
            err_console.print(f"[red]File not found: {current_path}[/red]")
            sys.exit(1)
        current = current_path.read_text(encoding="utf-8")

    orchestrator = _create_orchestrator(args, config)
    request = GenerationRequest(
        user_input=args.prompt,
        engine=args.engine,
        is_initial=not current,
        current_content=current,
    )

    with err_console.status("Generating...") as status:

        def on_progress(event: ProgressEvent) -> None:
            if event.phase == STREAMING and event.text:
                status.update(f"{event.label} [dim]({len(event.text)} chars)[/dim]")
            else:
                status.update(event.label.splitlines()[0])

        try:
            result = await orchestrator.generate(request, progress=on_progress)
        except DiagramValidationError as e:
            err_console.print(f"[red]Error:[/red] {e}")
            if e.attempts:
                err_console.print("[dim]Last output:[/dim]")
                err_console.print(e.attempts[-1].extracted_payload, markup=False)
            sys.exit(2)
        except DiagramEngineError as e:
            err_console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)

    if result.fix_attempts:
        err_console.print(f"[yellow]Repaired after {result.fix_attempts} fix attempt(s)[/yellow]")

    if args.output:
        Path(args.output).write_text(result.payload + "\n", encoding="utf-8")
        err_console.print(f"[green]Wrote {args.output}[/green]")
    else:
        console.print(result.payload, markup=False, highlight=False)


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP chat server."""
    from ai_diagram_engine.web.server import run_server

    console.print(f"[bold]Serving on http://{args.host}:{args.port}[/bold]")
    run_server(host=args.host, port=args.port, timeout=args.timeout)


async def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a diagram file."""
    path = Path(args.file)
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        sys.exit(1)

    engine = args.engine or _SUFFIX_ENGINES.get(path.suffix.lower())
    if engine is None:
        console.print(f"[red]Cannot guess the engine for {path.name}; pass --engine[/red]")
        sys.exit(1)

    result = await SyntaxValidator().validate(path.read_text(encoding="utf-8"), engine)
    if result.valid:
        console.print(f"  [green]✓[/green] {path} ({engine})")
    else:
        console.print(f"  [red]✗[/red] {path} ({engine}): {result.error}")
        sys.exit(1)


if __name__ == "__main__":
    main()
