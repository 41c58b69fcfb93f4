"""Diagnostic bundle collection.

Fetches every resource of a :class:`BundleSpec` concurrently, post-processes
the successful payloads and writes them, in declaration order, into a single
archive. A failing resource is recorded and skipped; only an archive write
failure fails the whole run.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from promdebug.config.settings import CollectorSettings
from promdebug.domain.bundle.models import (
    BundleSpec,
    FetchOutcome,
    ProcessedOutcome,
    ResourceEntry,
    ResourceFailure,
    RunResult,
)
from promdebug.domain.bundle.processors import run_post_process
from promdebug.infrastructure.archive import write_bundle_archive
from promdebug.infrastructure.errors import ArchiveWriteError, PromDebugError, ResourceNetworkError
from promdebug.infrastructure.logging import (
    BoundLogger,
    attach_run_context,
    get_logger,
    log_resource_event,
)
from promdebug.integrations.prometheus.fetcher import ResourceFetcher


async def _fetch_one(
    fetcher: ResourceFetcher, spec: BundleSpec, index: int, entry: ResourceEntry
) -> tuple[int, FetchOutcome]:
    try:
        payload = await fetcher.fetch(spec.server_address, entry.remote_path)
    except PromDebugError as exc:
        return index, FetchOutcome(entry=entry, error=exc)
    except Exception as exc:
        error = ResourceNetworkError(
            f"GET {spec.server_address}{entry.remote_path} failed: {exc}",
            resource=entry.remote_path,
            cause=type(exc).__name__,
        )
        error.__cause__ = exc
        return index, FetchOutcome(entry=entry, error=error)
    return index, FetchOutcome(entry=entry, payload=payload)


def _resolve_archive_path(spec: BundleSpec, output_dir: str | Path | None) -> Path:
    archive = Path(spec.archive_name)
    if output_dir is None or archive.is_absolute():
        return archive
    return Path(output_dir) / archive


async def _gather_outcomes(
    spec: BundleSpec, fetcher: ResourceFetcher, logger: BoundLogger
) -> dict[int, ProcessedOutcome]:
    tasks = [
        asyncio.ensure_future(_fetch_one(fetcher, spec, index, entry))
        for index, entry in enumerate(spec.resources)
    ]
    outcomes: dict[int, ProcessedOutcome] = {}
    for next_done in asyncio.as_completed(tasks):
        index, fetched = await next_done
        entry = fetched.entry
        if fetched.error is not None:
            log_resource_event(
                logger,
                "fetch.failed",
                resource=entry.remote_path,
                level=logging.WARNING,
                error=str(fetched.error),
                code=fetched.error.context.code,
            )
            outcomes[index] = ProcessedOutcome(entry=entry, error=fetched.error)
            continue

        processed = run_post_process(entry, fetched.payload or b"")
        if processed.error is not None:
            log_resource_event(
                logger,
                "post_process.failed",
                resource=entry.remote_path,
                level=logging.WARNING,
                error=str(processed.error),
            )
        else:
            log_resource_event(
                logger,
                "resource.collected",
                resource=entry.remote_path,
                level=logging.DEBUG,
                bytes=len(processed.payload or b""),
            )
        outcomes[index] = processed
    return outcomes


async def collect_bundle(
    spec: BundleSpec,
    *,
    fetcher: ResourceFetcher | None = None,
    output_dir: str | Path | None = None,
    settings: CollectorSettings | None = None,
    logger: BoundLogger | None = None,
) -> RunResult:
    """Run fetch, post-process and archive for every resource in ``spec``.

    ``output_dir`` (or ``settings.output_dir``) is prefixed to a relative
    ``spec.archive_name``. When ``fetcher`` is omitted one is created from
    ``settings`` and closed afterwards.
    """

    settings = settings or CollectorSettings()
    if output_dir is None and settings.output_dir:
        output_dir = settings.output_dir
    run_logger = attach_run_context(
        logger or get_logger("promdebug.collector"),
        server=spec.server_address,
        archive=spec.archive_name,
    )
    archive_path = _resolve_archive_path(spec, output_dir)
    run_logger.info("collector.start", resources=len(spec.resources))

    own_fetcher = fetcher is None
    active_fetcher = fetcher or ResourceFetcher(
        timeout=settings.timeout, verify=settings.verify, logger=run_logger
    )
    try:
        outcomes = await _gather_outcomes(spec, active_fetcher, run_logger)
    finally:
        if own_fetcher:
            await active_fetcher.aclose()

    members: list[tuple[str, bytes]] = []
    failures: list[ResourceFailure] = []
    for index in range(len(spec.resources)):
        outcome = outcomes[index]
        if outcome.error is not None:
            failures.append(ResourceFailure(outcome.entry.remote_path, outcome.error))
        else:
            members.append((outcome.entry.archive_file_name, outcome.payload or b""))

    try:
        written = write_bundle_archive(archive_path, members)
    except ArchiveWriteError as exc:
        run_logger.error("collector.failed", error=str(exc), failed_resources=len(failures))
        return RunResult(archive_path=None, error=exc)

    run_logger.info(
        "collector.done",
        path=str(written),
        collected=len(members),
        failed=len(failures),
    )
    return RunResult(
        archive_path=written,
        failures=tuple(failures),
        collected=tuple(name for name, _ in members),
    )


__all__ = ["collect_bundle"]
