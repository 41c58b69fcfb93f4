"""Bundle definitions and per-run outcome records."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from promdebug.infrastructure.errors import ArchiveWriteError, DuplicateEntryError, PromDebugError

PostProcessor = Callable[[bytes, Any], bytes]


class ResourceEntry(BaseModel):
    """One diagnostic endpoint to fetch and the archive member it becomes."""

    model_config = ConfigDict(frozen=True)

    remote_path: str
    archive_file_name: str
    post_process: PostProcessor

    @field_validator("remote_path")
    @classmethod
    def _validate_remote_path(cls, value: str) -> str:
        if not value or not value.startswith("/"):
            raise ValueError("remote_path must be a non-empty path starting with '/'")
        return value

    @field_validator("archive_file_name")
    @classmethod
    def _validate_archive_file_name(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("archive_file_name must not be empty")
        parts = PurePosixPath(candidate).parts
        if candidate.startswith("/") or ".." in parts:
            raise ValueError("archive_file_name must be a relative path inside the archive")
        return candidate


class BundleSpec(BaseModel):
    """Immutable description of one collection run.

    ``resources`` is an ordered tuple; archive members are written in this
    order. Construction fails with :class:`DuplicateEntryError` when two
    resources share an archive file name, before any request is issued.
    """

    model_config = ConfigDict(frozen=True)

    server_address: str
    archive_name: str
    resources: tuple[ResourceEntry, ...] = ()

    @field_validator("server_address")
    @classmethod
    def _validate_server_address(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("server_address must not be empty")
        if "://" not in candidate:
            candidate = f"http://{candidate}"
        parts = urlsplit(candidate)
        if parts.scheme not in {"http", "https"} or not parts.hostname:
            raise ValueError(f"server_address must be an http(s) URL, got {value!r}")
        try:
            _ = parts.port
        except ValueError as exc:
            raise ValueError(f"server_address has an invalid port: {value!r}") from exc
        return candidate.rstrip("/")

    @field_validator("archive_name")
    @classmethod
    def _validate_archive_name(cls, value: str) -> str:
        candidate = value.strip()
        if not candidate:
            raise ValueError("archive_name must not be empty")
        return candidate

    @model_validator(mode="after")
    def _reject_duplicate_file_names(self) -> "BundleSpec":
        seen: set[str] = set()
        for entry in self.resources:
            if entry.archive_file_name in seen:
                raise DuplicateEntryError(entry.archive_file_name)
            seen.add(entry.archive_file_name)
        return self


@dataclass(frozen=True)
class FetchOutcome:
    entry: ResourceEntry
    payload: bytes | None = None
    error: PromDebugError | None = None

    def __post_init__(self) -> None:
        if (self.payload is None) == (self.error is None):
            raise ValueError("FetchOutcome requires exactly one of payload or error")

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ProcessedOutcome:
    entry: ResourceEntry
    payload: bytes | None = None
    error: PromDebugError | None = None

    def __post_init__(self) -> None:
        if (self.payload is None) == (self.error is None):
            raise ValueError("ProcessedOutcome requires exactly one of payload or error")

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ResourceFailure:
    remote_path: str
    error: PromDebugError


@dataclass(frozen=True)
class RunResult:
    """Outcome of a collection run.

    ``error`` is only set when the archive could not be written; the run is
    then a total failure and ``archive_path`` is ``None``.
    """

    archive_path: Path | None
    failures: tuple[ResourceFailure, ...] = ()
    collected: tuple[str, ...] = ()
    error: ArchiveWriteError | None = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.failures

    @property
    def partial(self) -> bool:
        return self.error is None and bool(self.failures)

    def exit_code(self) -> int:
        if self.error is not None:
            return 1
        if self.failures:
            return 2
        return 0


__all__ = [
    "PostProcessor",
    "ResourceEntry",
    "BundleSpec",
    "FetchOutcome",
    "ProcessedOutcome",
    "ResourceFailure",
    "RunResult",
]
