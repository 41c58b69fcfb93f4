"""Bundle definitions used by the ``debug`` commands."""

from __future__ import annotations

from typing import Final

from promdebug.config.constants import DEFAULT_ARCHIVE_NAME
from promdebug.domain.bundle.models import BundleSpec, PostProcessor, ResourceEntry
from promdebug.domain.bundle.processors import all_resources, passthrough, pprof_profile

PPROF_RESOURCES: Final[tuple[tuple[str, str], ...]] = (
    ("/debug/pprof/block", "block.pb"),
    ("/debug/pprof/goroutine", "goroutine.pb"),
    ("/debug/pprof/heap", "heap.pb"),
    ("/debug/pprof/mutex", "mutex.pb"),
    ("/debug/pprof/threadcreate", "threadcreate.pb"),
)
METRICS_RESOURCES: Final[tuple[tuple[str, str], ...]] = (("/metrics", "metrics.txt"),)


def _entries(
    resources: tuple[tuple[str, str], ...], post_process: PostProcessor
) -> tuple[ResourceEntry, ...]:
    return tuple(
        ResourceEntry(remote_path=path, archive_file_name=name, post_process=post_process)
        for path, name in resources
    )


def pprof_bundle(server: str, *, archive_name: str = DEFAULT_ARCHIVE_NAME) -> BundleSpec:
    return BundleSpec(
        server_address=server,
        archive_name=archive_name,
        resources=_entries(PPROF_RESOURCES, pprof_profile),
    )


def metrics_bundle(server: str, *, archive_name: str = DEFAULT_ARCHIVE_NAME) -> BundleSpec:
    return BundleSpec(
        server_address=server,
        archive_name=archive_name,
        resources=_entries(METRICS_RESOURCES, passthrough),
    )


def all_bundle(server: str, *, archive_name: str = DEFAULT_ARCHIVE_NAME) -> BundleSpec:
    return BundleSpec(
        server_address=server,
        archive_name=archive_name,
        resources=_entries(PPROF_RESOURCES + METRICS_RESOURCES, all_resources),
    )


BUNDLE_FACTORIES: Final = {
    "pprof": pprof_bundle,
    "metrics": metrics_bundle,
    "all": all_bundle,
}


__all__ = [
    "PPROF_RESOURCES",
    "METRICS_RESOURCES",
    "BUNDLE_FACTORIES",
    "pprof_bundle",
    "metrics_bundle",
    "all_bundle",
]
