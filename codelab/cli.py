"""
Command line interface for CodeLab.

Runs source files through the dispatcher, serves the HTTP API and lists the
available toolchains. Output is rendered with Rich.
"""

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from . import __version__
from .core.config import CodeLabConfig, load_config
from .core.exceptions import CodeLabError, UnsupportedLanguageError, format_error_message
from .core.logging import configure_logging
from .execution.dispatcher import Dispatcher
from .execution.results import (
    ConfigurationFailure,
    ExecutionResult,
    RuntimeOrCompileFailure,
    Success,
    Timeout,
)
from .recipes.registry import DEFAULT_REGISTRY, detect_toolchain_health, normalize_language
from .recipes.templates import get_template

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION = 2

COLORS = {
    "primary": "#7AA2F7",
    "success": "#9ECE6A",
    "warning": "#E0AF68",
    "error": "#F7768E",
    "muted": "#565F89",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codelab",
        description="Compile and run source code in many languages.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        help="Configuration file (default: codelab.yaml in the current directory)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a source file")
    run_parser.add_argument("file", type=Path, help="Source file to run")
    run_parser.add_argument(
        "--language",
        "-l",
        help="Language identifier (inferred from the file extension when omitted)",
    )
    run_parser.add_argument("--timeout", "-t", type=float, help="Timeout in seconds")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", type=str, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, help="Port to bind to")

    subparsers.add_parser("languages", help="List languages and toolchain availability")

    template_parser = subparsers.add_parser("template", help="Print a starter program")
    template_parser.add_argument("language", help="Language identifier")

    return parser


def render_result(console: Console, result: ExecutionResult) -> int:
    """Print a result and return the matching process exit status."""
    if isinstance(result, Success):
        if result.stdout:
            console.print(Text(result.stdout.rstrip("\n")))
        if result.stderr:
            console.print(
                Panel(
                    Text(result.stderr.rstrip("\n")),
                    title="stderr",
                    border_style=COLORS["warning"],
                )
            )
        console.print(Text("✓ Success", style=COLORS["success"]))
        return EXIT_OK

    if isinstance(result, Timeout):
        console.print(Text(f"⏱ {result.message}", style=f"bold {COLORS['error']}"))
        return EXIT_FAILED

    if isinstance(result, RuntimeOrCompileFailure):
        console.print(
            Panel(
                Text(result.message.rstrip("\n")),
                title="Execution Failed",
                border_style=COLORS["error"],
            )
        )
        return EXIT_FAILED

    if isinstance(result, ConfigurationFailure):
        console.print(Text(f"✗ {result.message}", style=f"bold {COLORS['error']}"))
        return EXIT_CONFIGURATION

    raise TypeError(f"Unknown execution result: {result!r}")


def _run(console: Console, config: CodeLabConfig, args: argparse.Namespace) -> int:
    source_file: Path = args.file
    if not source_file.is_file():
        console.print(Text(f"✗ File not found: {source_file}", style=COLORS["error"]))
        return EXIT_CONFIGURATION

    language = args.language or DEFAULT_REGISTRY.infer_language(source_file)
    if language is None:
        raise UnsupportedLanguageError(source_file.suffix or source_file.name)

    try:
        source = source_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        message = f"✗ Source is not valid UTF-8 ({e.reason}): {source_file}"
        console.print(Text(message, style=COLORS["error"]))
        return EXIT_CONFIGURATION

    dispatcher = Dispatcher.from_config(config)
    with console.status(f"Running {source_file.name} as {language}..."):
        result = dispatcher.execute(language, source, timeout_seconds=args.timeout)
    return render_result(console, result)


def _serve(config: CodeLabConfig, args: argparse.Namespace) -> int:
    import uvicorn

    from .server.app import create_app

    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)
    return EXIT_OK


def _languages(console: Console) -> int:
    table = Table(title="Languages", header_style=f"bold {COLORS['primary']}")
    table.add_column("Language")
    table.add_column("Extension")
    table.add_column("Recipe")
    table.add_column("Toolchain")

    health = detect_toolchain_health()
    for language in DEFAULT_REGISTRY.languages:
        recipe = DEFAULT_REGISTRY[language]
        entry = health[language]
        status = (
            Text("✓ " + entry.detail, style=COLORS["success"])
            if entry.available
            else Text("✗ " + entry.detail, style=COLORS["error"])
        )
        table.add_row(language, recipe.extension, recipe.kind.value, status)

    console.print(table)
    return EXIT_OK


def _template(console: Console, language: str) -> int:
    recipe = DEFAULT_REGISTRY.require(language)
    language = normalize_language(language)
    console.print(Syntax(get_template(language), language, theme="monokai"))
    console.print(Text(f"Save as *{recipe.extension}", style=COLORS["muted"]))
    return EXIT_OK


def main(argv: list[str] | None = None, *, console: Console | None = None) -> int:
    """Entry point for the ``codelab`` console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()

    try:
        config = load_config(args.config)
        configure_logging("DEBUG" if args.verbose else config.log_level)

        if args.command == "run":
            return _run(console, config, args)
        if args.command == "serve":
            return _serve(config, args)
        if args.command == "languages":
            return _languages(console)
        if args.command == "template":
            return _template(console, args.language)
    except CodeLabError as e:
        console.print(Text(format_error_message(e), style=COLORS["error"]))
        return EXIT_CONFIGURATION

    parser.error(f"Unknown command: {args.command}")
    return EXIT_CONFIGURATION


if __name__ == "__main__":
    sys.exit(main())
