from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import httpx
import pytest

from promdebug.infrastructure.errors import (
    ErrorCode,
    ResourceNetworkError,
    ResourceReadError,
    ResourceStatusError,
)
from promdebug.integrations.prometheus import fetcher as fetcher_mod
from promdebug.integrations.prometheus.fetcher import USER_AGENT, ResourceFetcher
from tests.helpers import mock_client


class _BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield b"up 1"
        raise httpx.ReadError("connection reset by peer")


@pytest.mark.asyncio
async def test_fetch_returns_body_on_success() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"up 1\n")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), headers={"User-Agent": USER_AGENT})
    async with client:
        body = await ResourceFetcher(client, timeout=5).fetch("http://prom:9090/", "/metrics")

    assert body == b"up 1\n"
    assert str(seen[0].url) == "http://prom:9090/metrics"
    assert seen[0].method == "GET"


@pytest.mark.asyncio
async def test_non_2xx_maps_to_status_error() -> None:
    async with mock_client({"/metrics": 503}) as client:
        with pytest.raises(ResourceStatusError) as exc_info:
            await ResourceFetcher(client).fetch("http://prom:9090", "/metrics")

    assert exc_info.value.status_code == 503
    assert exc_info.value.resource == "/metrics"
    assert exc_info.value.context.code == ErrorCode.RESOURCE_STATUS.value


@pytest.mark.asyncio
async def test_connection_failure_maps_to_network_error() -> None:
    async with mock_client({"/metrics": httpx.ConnectError("connection refused")}) as client:
        with pytest.raises(ResourceNetworkError, match="connection refused"):
            await ResourceFetcher(client).fetch("http://prom:9090", "/metrics")


@pytest.mark.asyncio
async def test_transport_timeout_maps_to_network_error() -> None:
    async with mock_client({"/debug/pprof/heap": httpx.ReadTimeout("read timed out")}) as client:
        with pytest.raises(ResourceNetworkError, match="timed out"):
            await ResourceFetcher(client).fetch("http://prom:9090", "/debug/pprof/heap")


@pytest.mark.asyncio
async def test_invalid_url_maps_to_network_error() -> None:
    async with mock_client({"/metrics": httpx.InvalidURL("Invalid port: '99999'")}) as client:
        with pytest.raises(ResourceNetworkError, match="Invalid port") as exc_info:
            await ResourceFetcher(client).fetch("http://prom:9090", "/metrics")

    assert exc_info.value.resource == "/metrics"


@pytest.mark.asyncio
async def test_slow_response_is_bounded_by_timeout() -> None:
    client = mock_client({"/debug/pprof/heap": b"late"}, delays={"/debug/pprof/heap": 5})
    async with client:
        with pytest.raises(ResourceNetworkError, match="timed out after"):
            await ResourceFetcher(client, timeout=0.05).fetch("http://prom:9090", "/debug/pprof/heap")


@pytest.mark.asyncio
async def test_broken_body_maps_to_read_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=_BrokenStream())

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ResourceReadError, match="connection reset"):
            await ResourceFetcher(client).fetch("http://prom:9090", "/metrics")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("server", "path"),
    [("", "/metrics"), ("http://prom:9090", ""), ("http://prom:9090", "metrics")],
)
async def test_invalid_inputs_are_rejected(server: str, path: str) -> None:
    async with mock_client({}) as client:
        with pytest.raises(ValueError):
            await ResourceFetcher(client).fetch(server, path)


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ResourceFetcher(timeout=0)


@pytest.mark.asyncio
async def test_owned_client_is_closed(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[httpx.AsyncClient] = []

    def _factory(**kwargs: object) -> httpx.AsyncClient:
        client = mock_client({"/metrics": b"up 1\n"})
        created.append(client)
        return client

    monkeypatch.setattr(fetcher_mod, "create_client", _factory)

    async with ResourceFetcher(timeout=1) as fetcher:
        assert await fetcher.fetch("http://prom:9090", "/metrics") == b"up 1\n"

    assert created and created[0].is_closed


@pytest.mark.asyncio
async def test_injected_client_is_left_open() -> None:
    client = mock_client({"/metrics": b"up 1\n"})
    async with ResourceFetcher(client) as fetcher:
        await fetcher.fetch("http://prom:9090", "/metrics")
    assert not client.is_closed
    await client.aclose()


def test_create_client_applies_tls_and_timeout() -> None:
    client = fetcher_mod.create_client(timeout=12.5, verify=False)
    try:
        assert client.timeout.read == 12.5
        assert client.headers["User-Agent"] == USER_AGENT
    finally:
        asyncio.run(client.aclose())
