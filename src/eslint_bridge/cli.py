"""eslint-bridge CLI - Main entry point."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from lsprotocol.types import DiagnosticSeverity
from rich.console import Console
from rich.table import Table

from eslint_bridge import __version__
from eslint_bridge.config import ServerConfig, load_config
from eslint_bridge.documents import TextDocument, path_to_uri
from eslint_bridge.engine.eslint import EslintEngine
from eslint_bridge.engine.loader import EngineResolver
from eslint_bridge.errors import LibraryLoadError, LintError, get_message
from eslint_bridge.fixes.registry import FixRegistry
from eslint_bridge.fixes.resolver import Fixes
from eslint_bridge.log import setup_logging
from eslint_bridge.validation.pipeline import collect_diagnostics

# Exit code conventions
EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1  # Lint errors found, bad input
EXIT_SYSTEM_ERROR = 2  # ESLint missing or crashed

app = typer.Typer(
    name="eslint-bridge",
    help="eslint-bridge - ESLint diagnostics and fixes for editors over the Language Server Protocol.",
    add_completion=False,
)

# Rich consoles for output
console = Console()
err_console = Console(stderr=True)


# -----------------------------------------------------------------------------
# Output Helpers
# -----------------------------------------------------------------------------


def _output_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[red]Error:[/red] {message}")


def _exit_error(message: str, exit_code: int = EXIT_USER_ERROR) -> NoReturn:
    """Print error and exit."""
    _output_error(message)
    raise typer.Exit(code=exit_code)


def _load_config(overrides: dict[str, Any]) -> ServerConfig:
    try:
        return load_config(cli_overrides=overrides)
    except ValueError as e:
        _exit_error(f"Invalid configuration: {e}")


# -----------------------------------------------------------------------------
# Version and Main Callbacks
# -----------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"eslint-bridge version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """eslint-bridge - ESLint diagnostics and fixes for editors over the Language Server Protocol."""
    pass


# -----------------------------------------------------------------------------
# Serve Command
# -----------------------------------------------------------------------------


@app.command()
def serve(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Minimum log level written to stderr.",
    ),
    log_file: str | None = typer.Option(
        None,
        "--log-file",
        help="Also write the log to this file.",
    ),
) -> None:
    """Run the language server over stdio."""
    from eslint_bridge.server import start

    config = _load_config({"log_level": log_level, "log_file": log_file})
    setup_logging(config.log_level, config.log_file)
    start(config)


# -----------------------------------------------------------------------------
# Check Command
# -----------------------------------------------------------------------------


def _severity_label(severity: DiagnosticSeverity | None) -> str:
    if severity == DiagnosticSeverity.Warning:
        return "[yellow]warning[/yellow]"
    return "[red]error[/red]"


@app.command()
def check(
    path: Path = typer.Argument(..., help="File to lint."),
    eslint: str | None = typer.Option(
        None,
        "--eslint",
        help="Path to the eslint executable. Found next to the file by default.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON.",
    ),
) -> None:
    """Lint one file and show the diagnostics an editor would get.

    Also reports how many of the proposed fixes can be applied together.
    """
    if not path.is_file():
        _exit_error(f"File not found: {path}")

    config = _load_config({"eslint_path": eslint, "log_level": "WARNING"})
    setup_logging(config.log_level)

    file_path = path.resolve()
    uri = path_to_uri(str(file_path)) or str(file_path)
    document = TextDocument(
        uri=uri,
        language_id="javascript",
        version=0,
        text=file_path.read_text(encoding="utf-8"),
    )

    try:
        executable = EngineResolver(eslint_path=config.eslint_path).resolve(document)
    except LibraryLoadError as e:
        _exit_error(str(e), EXIT_SYSTEM_ERROR)

    try:
        report = asyncio.run(EslintEngine(executable).execute_on_text(document.text, str(file_path)))
    except LintError as e:
        _exit_error(get_message(e, str(file_path)), EXIT_SYSTEM_ERROR)

    registry = FixRegistry()
    diagnostics = collect_diagnostics(document, report, registry)
    fixes = Fixes(registry.lookup(uri) or {})
    applicable = len(fixes.overlap_free())
    has_errors = any(d.severity == DiagnosticSeverity.Error for d in diagnostics)

    if json_output:
        result = {
            "file": str(file_path),
            "diagnostics": [
                {
                    "line": d.range.start.line,
                    "character": d.range.start.character,
                    "severity": "warning" if d.severity == DiagnosticSeverity.Warning else "error",
                    "code": d.code,
                    "message": d.message,
                }
                for d in diagnostics
            ],
            "fixable": applicable,
        }
        console.print_json(json.dumps(result))
    else:
        if not diagnostics:
            console.print(f"[green]No problems found in {path}[/green]")
        else:
            table = Table(title=str(path))
            table.add_column("Line", justify="right")
            table.add_column("Col", justify="right")
            table.add_column("Severity")
            table.add_column("Rule")
            table.add_column("Message")
            for d in diagnostics:
                table.add_row(
                    str(d.range.start.line + 1),
                    str(d.range.start.character + 1),
                    _severity_label(d.severity),
                    str(d.code or ""),
                    d.message,
                )
            console.print(table)
            console.print(f"{len(diagnostics)} problem(s), {applicable} fixable together")

    if has_errors:
        raise typer.Exit(code=EXIT_USER_ERROR)


if __name__ == "__main__":
    app()
