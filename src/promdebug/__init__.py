"""Top-level PromDebug package API."""

from promdebug.application.bundles import all_bundle, metrics_bundle, pprof_bundle
from promdebug.application.collector import collect_bundle
from promdebug.domain.bundle.models import BundleSpec, ResourceEntry, RunResult

__all__ = [
    "BundleSpec",
    "ResourceEntry",
    "RunResult",
    "collect_bundle",
    "pprof_bundle",
    "metrics_bundle",
    "all_bundle",
]
