"""PromDebug Typer CLI application."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from promdebug.cli.commands import debug as debug_command

PROJECT_ROOT = Path(__file__).resolve().parents[3]

stderr_console = Console(stderr=True)
stdout_console = Console(stderr=False)

app = typer.Typer(
    help="Diagnostics tooling for a running Prometheus server",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

debug_command.register(app, stdout_console=stdout_console, stderr_console=stderr_console)


@app.command(help="Show the installed PromDebug package version.")
def version() -> None:
    """Print the PromDebug version discovered from the package metadata."""
    from importlib import metadata

    try:
        resolved_version = metadata.version("promdebug")
    except metadata.PackageNotFoundError:
        pyproject = PROJECT_ROOT / "pyproject.toml"
        if not pyproject.exists():
            stdout_console.print("Version information unavailable")
            return
        import tomllib

        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        resolved_version = data.get("project", {}).get("version", "unknown")
    stdout_console.print(resolved_version)


__all__ = ["app", "stdout_console", "stderr_console"]
