"""``debug`` commands: collect diagnostic bundles from a running server."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from promdebug.application.bundles import BUNDLE_FACTORIES
from promdebug.application.collector import collect_bundle
from promdebug.cli import options as cli_options
from promdebug.cli.formatting import RichStyles
from promdebug.cli.sync_bridge import await_sync
from promdebug.config.settings import (
    CollectorInputs,
    CollectorSettings,
    LoggingInputs,
    RuntimeInputs,
    TlsInputs,
    resolve_application_settings,
)
from promdebug.domain.bundle.models import BundleSpec, RunResult
from promdebug.infrastructure.errors import PromDebugError
from promdebug.infrastructure.logging import configure_logging, get_logger

_COMMAND_HELP = {
    "pprof": "Fetch profiling debug information.",
    "metrics": "Fetch metrics debug information.",
    "all": "Fetch all debug information.",
}


def _collector_inputs(output: Path | None, timeout: float | None) -> CollectorInputs:
    if output is None:
        return CollectorInputs(timeout=timeout)
    return CollectorInputs(
        timeout=timeout,
        archive_name=output.name,
        output_dir=str(output.parent),
    )


def _resolve_settings(
    *,
    config_path: Path | None,
    output: Path | None,
    timeout: float | None,
    debug: bool | None,
    allow_insecure_tls: bool | None,
    ca_bundle: str | None,
    log_level: str | None,
    log_format: str | None,
    log_file: str | None,
) -> CollectorSettings:
    try:
        collector_settings, logging_settings = resolve_application_settings(
            config_path=str(config_path) if config_path else None,
            collector_inputs=_collector_inputs(output, timeout),
            runtime_inputs=RuntimeInputs(debug=debug),
            tls_inputs=TlsInputs(
                allow_insecure=allow_insecure_tls,
                ca_bundle_path=cli_options.clean_string(ca_bundle),
            ),
            logging_inputs=LoggingInputs(
                level=cli_options.normalize_log_level(log_level),
                format=cli_options.normalize_log_format(log_format),
                file_path=cli_options.clean_string(log_file),
            ),
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    configure_logging(logging_settings)
    logger = get_logger("promdebug.cli")
    for warning in collector_settings.warnings:
        logger.warning("config.warning", message=warning)
    return collector_settings


def render_bundle_summary(spec: BundleSpec, result: RunResult, console: Console) -> None:
    failures = {failure.remote_path: failure.error for failure in result.failures}

    table = Table(title="Debug Bundle", box=box.SIMPLE_HEAVY)
    table.add_column("Resource", style=RichStyles.ACCENT, no_wrap=True)
    table.add_column("File", style=RichStyles.SECONDARY, no_wrap=True)
    table.add_column("Status", style=RichStyles.EMPHASIS)
    table.add_column("Details", style=RichStyles.DETAIL, overflow="fold")
    for entry in spec.resources:
        error = failures.get(entry.remote_path)
        if error is None:
            table.add_row(entry.remote_path, entry.archive_file_name, "OK", "-")
        else:
            table.add_row(entry.remote_path, entry.archive_file_name, "FAILED", str(error))

    console.print()
    console.print(table)


def run_debug_bundle(
    kind: str,
    server: str,
    *,
    stdout_console: Console,
    stderr_console: Console,
    settings: CollectorSettings,
) -> int:
    """Collect one bundle and report it; returns the process exit code."""

    factory = BUNDLE_FACTORIES[kind]
    try:
        spec = factory(server, archive_name=settings.archive_name)
    except PromDebugError as exc:
        stderr_console.print(
            f"[red]error creating debug bundle:[/red] {exc.user_message}", soft_wrap=True
        )
        return 1
    except ValidationError as exc:
        messages = "; ".join(error["msg"] for error in exc.errors())
        stderr_console.print(f"[red]error creating debug bundle:[/red] {messages}", soft_wrap=True)
        return 1

    try:
        result: RunResult = await_sync(collect_bundle(spec, settings=settings))
    except OSError as exc:
        # Raised while building the HTTP client, e.g. an unreadable CA bundle.
        stderr_console.print(f"[red]error preparing HTTP client:[/red] {exc}", soft_wrap=True)
        return 1

    if result.error is not None:
        stderr_console.print(
            f"[red]error writing debug bundle:[/red] {result.error.user_message}", soft_wrap=True
        )
        return result.exit_code()

    render_bundle_summary(spec, result, stdout_console)
    for failure in result.failures:
        stderr_console.print(
            f"[yellow]error collecting {failure.remote_path}:[/yellow] {failure.error}",
            soft_wrap=True,
        )
    label = "Partial debug bundle" if result.partial else "Debug bundle"
    stdout_console.print(f"{label} written to {result.archive_path}", soft_wrap=True, highlight=False)
    return result.exit_code()


def _make_command(
    kind: str, *, stdout_console: Console, stderr_console: Console
) -> Callable[..., None]:
    def command(
        server: cli_options.ServerArgument,
        config_path: cli_options.ConfigPathOption = None,
        output: cli_options.OutputOption = None,
        timeout: cli_options.TimeoutOption = None,
        debug: cli_options.DebugOption = None,
        allow_insecure_tls: cli_options.AllowInsecureTlsOption = None,
        ca_bundle: cli_options.CaBundleOption = None,
        log_level: cli_options.LogLevelOption = None,
        log_format: cli_options.LogFormatOption = None,
        log_file: cli_options.LogFileOption = None,
    ) -> None:
        settings = _resolve_settings(
            config_path=config_path,
            output=output,
            timeout=timeout,
            debug=debug,
            allow_insecure_tls=allow_insecure_tls,
            ca_bundle=ca_bundle,
            log_level=log_level,
            log_format=log_format,
            log_file=log_file,
        )
        exit_code = run_debug_bundle(
            kind,
            server,
            stdout_console=stdout_console,
            stderr_console=stderr_console,
            settings=settings,
        )
        if exit_code:
            raise typer.Exit(code=exit_code)

    command.__doc__ = _COMMAND_HELP[kind]
    return command


def register(
    app: typer.Typer,
    *,
    stdout_console: Console,
    stderr_console: Console,
) -> None:
    """Attach the ``debug`` command group to ``app``."""

    debug_app = typer.Typer(help="Fetch debug information.", rich_markup_mode="rich")
    for kind in BUNDLE_FACTORIES:
        debug_app.command(name=kind, help=_COMMAND_HELP[kind])(
            _make_command(kind, stdout_console=stdout_console, stderr_console=stderr_console)
        )
    app.add_typer(debug_app, name="debug")


__all__ = ["register", "render_bundle_summary", "run_debug_bundle"]
