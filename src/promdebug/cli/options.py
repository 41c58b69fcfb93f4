"""Typer option declarations and normalization helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Final

import typer

LOG_FORMAT_CHOICES: Final[set[str]] = {"text", "json"}
LOG_LEVEL_CHOICES: Final[list[str]] = sorted(
    name
    for name, value in logging.getLevelNamesMapping().items()
    if isinstance(name, str) and not name.isdigit()
)
LOG_LEVEL_SET: Final[set[str]] = {choice.upper() for choice in LOG_LEVEL_CHOICES}

ServerArgument = Annotated[
    str,
    typer.Argument(
        help="Base URL of the server to collect from, e.g. http://localhost:9090",
        show_default=False,
    ),
]

ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Path to a PromDebug configuration TOML file to load",
        envvar="PROMDEBUG_CONFIG",
        show_envvar=True,
        rich_help_panel="Configuration",
    ),
]

OutputOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Path of the archive to write (default: ./debug.tar.gz)",
        rich_help_panel="Collection",
    ),
]

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        min=0.001,
        help="Per-resource request timeout in seconds",
        envvar="PROMDEBUG_TIMEOUT",
        show_envvar=True,
        rich_help_panel="Collection",
    ),
]

DebugOption = Annotated[
    bool | None,
    typer.Option(
        "--debug/--no-debug",
        help="Enable verbose diagnostics",
        envvar="PROMDEBUG_DEBUG",
        show_envvar=True,
        rich_help_panel="Diagnostics",
    ),
]

AllowInsecureTlsOption = Annotated[
    bool | None,
    typer.Option(
        "--allow-insecure-tls/--enforce-tls",
        help="Disable TLS verification for requests (not recommended)",
        envvar="PROMDEBUG_ALLOW_INSECURE_TLS",
        show_envvar=True,
        rich_help_panel="TLS",
    ),
]

CaBundleOption = Annotated[
    str | None,
    typer.Option(
        "--ca-bundle",
        help="Path to a custom certificate authority bundle",
        envvar="PROMDEBUG_CA_BUNDLE",
        show_envvar=True,
        rich_help_panel="TLS",
    ),
]

LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Logging level (e.g. INFO, DEBUG)",
        envvar="PROMDEBUG_LOG_LEVEL",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFormatOption = Annotated[
    str | None,
    typer.Option(
        "--log-format",
        help="Logging format (text or json)",
        envvar="PROMDEBUG_LOG_FORMAT",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFileOption = Annotated[
    str | None,
    typer.Option(
        "--log-file",
        help="Path to a log file (use '-', none, stderr to disable)",
        envvar="PROMDEBUG_LOG_FILE",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]


def clean_string(value: str | None) -> str | None:
    """Normalize optional string input."""

    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def normalize_log_format(value: str | None) -> str | None:
    """Normalize the log format option."""

    if value is None:
        return None
    candidate = value.strip().lower()
    if not candidate:
        return None
    if candidate not in LOG_FORMAT_CHOICES:
        raise typer.BadParameter(
            "Log format must be either 'text' or 'json'",
            param_hint="--log-format",
        )
    return candidate


def normalize_log_level(value: str | None) -> str | None:
    """Normalize the log level option."""

    if value is None:
        return None
    candidate = value.strip().upper()
    if not candidate:
        return None
    if candidate not in LOG_LEVEL_SET:
        raise typer.BadParameter(
            f"Log level must be one of: {', '.join(LOG_LEVEL_CHOICES)}",
            param_hint="--log-level",
        )
    return candidate


__all__ = [
    "AllowInsecureTlsOption",
    "CaBundleOption",
    "ConfigPathOption",
    "DebugOption",
    "LOG_FORMAT_CHOICES",
    "LOG_LEVEL_CHOICES",
    "LogFileOption",
    "LogFormatOption",
    "LogLevelOption",
    "OutputOption",
    "ServerArgument",
    "TimeoutOption",
    "clean_string",
    "normalize_log_format",
    "normalize_log_level",
]
