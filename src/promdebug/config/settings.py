"""Dynaconf-backed configuration helpers for PromDebug."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Sequence

from dynaconf import Dynaconf

from promdebug.config.constants import (
    DEFAULT_ARCHIVE_NAME,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_FETCH_TIMEOUT,
    LOCAL_CONFIG_FILENAME,
    coerce_bool,
    coerce_positive_float,
)

LOG_FORMAT_TEXT = "text"
LOG_FORMAT_JSON = "json"
DEFAULT_LOG_FORMAT = LOG_FORMAT_TEXT
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_BYTES = 10_000_000
DEFAULT_BACKUP_COUNT = 5
DEFAULT_OUTPUT_DIR = "."

# Dynaconf keys used throughout the module.
COLLECTOR_TIMEOUT_KEY = "collector.timeout"
COLLECTOR_ARCHIVE_NAME_KEY = "collector.archive_name"
COLLECTOR_OUTPUT_DIR_KEY = "collector.output_dir"

RUNTIME_DEBUG_KEY = "runtime.debug"
RUNTIME_ALLOW_INSECURE_TLS_KEY = "runtime.allow_insecure_tls"
RUNTIME_CA_BUNDLE_PATH_KEY = "runtime.ca_bundle_path"

LOGGING_LEVEL_KEY = "logging.level"
LOGGING_FORMAT_KEY = "logging.format"
LOGGING_FILE_KEY = "logging.file"
LOGGING_MAX_BYTES_KEY = "logging.max_bytes"
LOGGING_BACKUP_COUNT_KEY = "logging.backup_count"

_ENVIRONMENT_MAP = {
    "PROMDEBUG_TIMEOUT": COLLECTOR_TIMEOUT_KEY,
    "PROMDEBUG_ARCHIVE_NAME": COLLECTOR_ARCHIVE_NAME_KEY,
    "PROMDEBUG_OUTPUT_DIR": COLLECTOR_OUTPUT_DIR_KEY,
    "PROMDEBUG_DEBUG": RUNTIME_DEBUG_KEY,
    "PROMDEBUG_ALLOW_INSECURE_TLS": RUNTIME_ALLOW_INSECURE_TLS_KEY,
    "PROMDEBUG_CA_BUNDLE": RUNTIME_CA_BUNDLE_PATH_KEY,
    "PROMDEBUG_LOG_LEVEL": LOGGING_LEVEL_KEY,
    "PROMDEBUG_LOG_FORMAT": LOGGING_FORMAT_KEY,
    "PROMDEBUG_LOG_FILE": LOGGING_FILE_KEY,
    "PROMDEBUG_LOG_MAX_BYTES": LOGGING_MAX_BYTES_KEY,
    "PROMDEBUG_LOG_BACKUP_COUNT": LOGGING_BACKUP_COUNT_KEY,
}

_LOGFILE_DISABLED_VALUES = {"-", "none", "stderr", "stdout"}


@dataclass(frozen=True)
class CollectorInputs:
    timeout: float | None = None
    archive_name: str | None = None
    output_dir: str | None = None


@dataclass(frozen=True)
class RuntimeInputs:
    debug: bool | None = None


@dataclass(frozen=True)
class TlsInputs:
    allow_insecure: bool | None = None
    ca_bundle_path: str | None = None


@dataclass(frozen=True)
class LoggingInputs:
    level: str | None = None
    format: str | None = None
    file_path: str | None = None
    max_bytes: int | None = None
    backup_count: int | None = None


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    format: str
    file_path: str | None
    max_bytes: int
    backup_count: int

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


@dataclass(frozen=True)
class CollectorSettings:
    """Resolved settings for one bundle collection run."""

    timeout: float = DEFAULT_FETCH_TIMEOUT
    archive_name: str = DEFAULT_ARCHIVE_NAME
    output_dir: str = DEFAULT_OUTPUT_DIR
    debug: bool = False
    allow_insecure_tls: bool = False
    ca_bundle_path: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def verify(self) -> bool | str:
        """Value for the ``verify`` argument of :class:`httpx.AsyncClient`."""
        if self.allow_insecure_tls:
            return False
        if self.ca_bundle_path:
            return self.ca_bundle_path
        return True


def is_logfile_disabled_value(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in _LOGFILE_DISABLED_VALUES


def _default_settings_files(config_path: str | None) -> tuple[Sequence[str], str | None]:
    if config_path:
        config_file = Path(config_path)
        local_file = config_file.with_name(f"{config_file.stem}.local{config_file.suffix}")
        files: list[str] = []
        if config_file.exists():
            files.append(str(config_file))
        if local_file.exists():
            files.append(str(local_file))
        return files or [str(config_file)], None
    return [DEFAULT_CONFIG_FILENAME, LOCAL_CONFIG_FILENAME], os.getcwd()


def _coerce_str(value: Any | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        candidate = value.strip()
        return candidate or None
    return str(value)


def _coerce_int(value: Any | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _apply_environment_overrides(settings: Dynaconf) -> None:
    for env_var, key in _ENVIRONMENT_MAP.items():
        raw = os.getenv(env_var)
        if raw is None or not raw.strip():
            continue
        settings.set(key, raw)


def _set_if_present(settings: Dynaconf, key: str, value: Any | None) -> None:
    if value is None:
        return
    if isinstance(value, str):
        value = value.strip()
    settings.set(key, value)


def apply_cli_overrides(
    settings: Dynaconf,
    *,
    collector_inputs: CollectorInputs | None = None,
    runtime_inputs: RuntimeInputs | None = None,
    tls_inputs: TlsInputs | None = None,
    logging_inputs: LoggingInputs | None = None,
) -> None:
    """Apply CLI overrides to the provided settings instance."""

    if collector_inputs is not None:
        _set_if_present(settings, COLLECTOR_TIMEOUT_KEY, collector_inputs.timeout)
        _set_if_present(settings, COLLECTOR_ARCHIVE_NAME_KEY, collector_inputs.archive_name)
        _set_if_present(settings, COLLECTOR_OUTPUT_DIR_KEY, collector_inputs.output_dir)
    if runtime_inputs is not None:
        _set_if_present(settings, RUNTIME_DEBUG_KEY, runtime_inputs.debug)
    if tls_inputs is not None:
        _set_if_present(settings, RUNTIME_ALLOW_INSECURE_TLS_KEY, tls_inputs.allow_insecure)
        _set_if_present(settings, RUNTIME_CA_BUNDLE_PATH_KEY, tls_inputs.ca_bundle_path)
    if logging_inputs is not None:
        _set_if_present(settings, LOGGING_LEVEL_KEY, logging_inputs.level)
        _set_if_present(settings, LOGGING_FORMAT_KEY, logging_inputs.format)
        _set_if_present(settings, LOGGING_FILE_KEY, logging_inputs.file_path)
        _set_if_present(settings, LOGGING_MAX_BYTES_KEY, logging_inputs.max_bytes)
        _set_if_present(settings, LOGGING_BACKUP_COUNT_KEY, logging_inputs.backup_count)


def load_settings(config_path: str | None = None) -> Dynaconf:
    """Create a Dynaconf instance configured for the supplied path."""

    files, root_path = _default_settings_files(config_path)
    settings = Dynaconf(
        settings_files=list(files),
        envvar_prefix="PROMDEBUG",
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
        root_path=root_path,
    )
    _apply_environment_overrides(settings)
    return settings


def _resolve_bool(settings: Dynaconf, key: str, *, default: bool = False) -> bool:
    return coerce_bool(settings.get(key), default=default)


def collector_from_settings(settings: Dynaconf) -> CollectorSettings:
    """Extract collector settings and validation warnings from Dynaconf."""

    warnings: list[str] = []

    try:
        timeout = coerce_positive_float(
            settings.get(COLLECTOR_TIMEOUT_KEY), default=DEFAULT_FETCH_TIMEOUT
        )
    except ValueError as exc:
        warnings.append(f"Invalid collector timeout ({exc}); using default configuration")
        timeout = DEFAULT_FETCH_TIMEOUT

    archive_name = _coerce_str(settings.get(COLLECTOR_ARCHIVE_NAME_KEY)) or DEFAULT_ARCHIVE_NAME
    output_dir = _coerce_str(settings.get(COLLECTOR_OUTPUT_DIR_KEY)) or DEFAULT_OUTPUT_DIR

    allow_insecure_tls = _resolve_bool(settings, RUNTIME_ALLOW_INSECURE_TLS_KEY)
    ca_bundle_path = _coerce_str(settings.get(RUNTIME_CA_BUNDLE_PATH_KEY))
    if allow_insecure_tls and ca_bundle_path:
        warnings.append(
            "allow_insecure_tls takes precedence over ca_bundle_path; "
            "HTTPS verification will be disabled"
        )
        ca_bundle_path = None
    elif ca_bundle_path and not Path(ca_bundle_path).expanduser().is_file():
        warnings.append(
            f"CA bundle {ca_bundle_path} was not found; using the default certificate store"
        )
        ca_bundle_path = None

    return CollectorSettings(
        timeout=timeout,
        archive_name=archive_name,
        output_dir=output_dir,
        debug=_resolve_bool(settings, RUNTIME_DEBUG_KEY),
        allow_insecure_tls=allow_insecure_tls,
        ca_bundle_path=ca_bundle_path,
        warnings=tuple(warnings),
    )


def logging_from_settings(settings: Dynaconf) -> LoggingSettings:
    """Extract logging configuration from Dynaconf."""

    level_value = _coerce_str(settings.get(LOGGING_LEVEL_KEY)) or DEFAULT_LOG_LEVEL
    format_value = (_coerce_str(settings.get(LOGGING_FORMAT_KEY)) or DEFAULT_LOG_FORMAT).lower()
    if format_value not in {LOG_FORMAT_TEXT, LOG_FORMAT_JSON}:
        raise ValueError(f"Unsupported log format: {format_value}")

    file_path = _coerce_str(settings.get(LOGGING_FILE_KEY))
    if is_logfile_disabled_value(file_path):
        file_path = None

    max_bytes_value = _coerce_int(settings.get(LOGGING_MAX_BYTES_KEY))
    if max_bytes_value is None or max_bytes_value <= 0:
        max_bytes_value = DEFAULT_MAX_BYTES

    backup_count_value = _coerce_int(settings.get(LOGGING_BACKUP_COUNT_KEY))
    if backup_count_value is None or backup_count_value <= 0:
        backup_count_value = DEFAULT_BACKUP_COUNT

    level_upper = level_value.upper()
    if level_upper.isdigit():
        resolved_level = int(level_upper)
    else:
        resolved_level = logging.getLevelNamesMapping().get(level_upper, logging.INFO)

    return LoggingSettings(
        level=resolved_level,
        format=format_value,
        file_path=file_path,
        max_bytes=max_bytes_value,
        backup_count=backup_count_value,
    )


def resolve_application_settings(
    *,
    config_path: str | None = None,
    collector_inputs: CollectorInputs | None = None,
    runtime_inputs: RuntimeInputs | None = None,
    tls_inputs: TlsInputs | None = None,
    logging_inputs: LoggingInputs | None = None,
) -> tuple[CollectorSettings, LoggingSettings]:
    settings = load_settings(config_path)
    apply_cli_overrides(
        settings,
        collector_inputs=collector_inputs,
        runtime_inputs=runtime_inputs,
        tls_inputs=tls_inputs,
        logging_inputs=logging_inputs,
    )
    collector_settings = collector_from_settings(settings)
    logging_settings = logging_from_settings(settings)

    if collector_settings.debug and logging_settings.level > logging.DEBUG:
        logging_settings = replace(logging_settings, level=logging.DEBUG)

    return collector_settings, logging_settings


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_BYTES",
    "DEFAULT_BACKUP_COUNT",
    "DEFAULT_OUTPUT_DIR",
    "LOG_FORMAT_TEXT",
    "LOG_FORMAT_JSON",
    "CollectorInputs",
    "RuntimeInputs",
    "TlsInputs",
    "LoggingInputs",
    "LoggingSettings",
    "CollectorSettings",
    "is_logfile_disabled_value",
    "load_settings",
    "apply_cli_overrides",
    "collector_from_settings",
    "logging_from_settings",
    "resolve_application_settings",
]
