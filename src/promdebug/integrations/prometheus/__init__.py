"""Prometheus server integration."""

from promdebug.integrations.prometheus.fetcher import ResourceFetcher, create_client

__all__ = ["ResourceFetcher", "create_client"]
