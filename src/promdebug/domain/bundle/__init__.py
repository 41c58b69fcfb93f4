"""Bundle domain model and post-processors."""

from promdebug.domain.bundle.models import (
    BundleSpec,
    FetchOutcome,
    ProcessedOutcome,
    ResourceEntry,
    ResourceFailure,
    RunResult,
)

__all__ = [
    "BundleSpec",
    "FetchOutcome",
    "ProcessedOutcome",
    "ResourceEntry",
    "ResourceFailure",
    "RunResult",
]
