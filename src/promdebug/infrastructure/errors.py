"""Domain error types for PromDebug.

Resource-level errors (network, status, body read, post-processing) are
collected into :class:`~promdebug.domain.bundle.models.RunResult` as data.
Archive and bundle definition errors abort the run and are raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    RESOURCE_NETWORK = "PROMDEBUG_RESOURCE_NETWORK"
    RESOURCE_STATUS = "PROMDEBUG_RESOURCE_STATUS"
    RESOURCE_READ = "PROMDEBUG_RESOURCE_READ"
    POST_PROCESS = "PROMDEBUG_POST_PROCESS"
    ARCHIVE_WRITE = "PROMDEBUG_ARCHIVE_WRITE"
    DUPLICATE_ENTRY = "PROMDEBUG_DUPLICATE_ENTRY"


@dataclass(frozen=True)
class ErrorContext:
    code: str
    resource: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


class PromDebugError(Exception):
    """Base class for errors carrying a code and an operator-facing message."""

    code: ErrorCode

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        user_message: str | None = None,
        **details: Any,
    ) -> None:
        super().__init__(message)
        self.context = ErrorContext(
            code=self.code.value,
            resource=resource,
            details={key: value for key, value in details.items() if value is not None},
        )
        self.user_message = user_message or message

    @property
    def resource(self) -> str | None:
        return self.context.resource


class ResourceNetworkError(PromDebugError):
    """Connection failure or timeout while requesting a resource."""

    code = ErrorCode.RESOURCE_NETWORK


class ResourceStatusError(PromDebugError):
    """The server answered with a non-2xx status."""

    code = ErrorCode.RESOURCE_STATUS

    def __init__(self, message: str, *, status_code: int, **kwargs: Any) -> None:
        super().__init__(message, status_code=status_code, **kwargs)
        self.status_code = status_code


class ResourceReadError(PromDebugError):
    """The response body could not be read completely."""

    code = ErrorCode.RESOURCE_READ


class PostProcessError(PromDebugError):
    code = ErrorCode.POST_PROCESS

    def __init__(self, resource: str, cause: BaseException) -> None:
        super().__init__(
            f"post-processing {resource} failed: {cause}",
            resource=resource,
            cause=type(cause).__name__,
        )
        self.cause = cause


class ArchiveWriteError(PromDebugError):
    """Writing the bundle archive failed; no archive is left behind."""

    code = ErrorCode.ARCHIVE_WRITE


class DuplicateEntryError(PromDebugError):
    code = ErrorCode.DUPLICATE_ENTRY

    def __init__(self, file_name: str) -> None:
        super().__init__(
            f"archive file name {file_name!r} is used by more than one resource",
            file_name=file_name,
            user_message=(
                f"Bundle definition maps two resources to '{file_name}'. "
                "Give every resource a distinct archive file name."
            ),
        )
        self.file_name = file_name


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "PromDebugError",
    "ResourceNetworkError",
    "ResourceStatusError",
    "ResourceReadError",
    "PostProcessError",
    "ArchiveWriteError",
    "DuplicateEntryError",
]
