"""Shared builders for PromDebug tests."""

from __future__ import annotations

import asyncio
import tarfile
from collections.abc import Mapping
from pathlib import Path

import httpx

# sample_type, string_table ["", "bytes"], duration_nanos
PROFILE_BYTES = b"\x0a\x04\x08\x01\x10\x02" + b"\x32\x00" + b"\x32\x05bytes" + b"\x48\x05"


def mock_client(
    bodies: Mapping[str, bytes | int | Exception],
    *,
    delays: Mapping[str, float] | None = None,
    calls: list[str] | None = None,
) -> httpx.AsyncClient:
    """AsyncClient answering from ``bodies`` keyed by request path.

    A ``bytes`` value is returned with status 200, an ``int`` is used as the
    status code, and an exception instance is raised.
    """

    delays = delays or {}

    async def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if calls is not None:
            calls.append(path)
        await asyncio.sleep(delays.get(path, 0))
        value = bodies.get(path, 404)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            return httpx.Response(value, content=b"")
        return httpx.Response(200, content=value)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def archive_members(path: Path) -> list[tuple[str, bytes]]:
    with tarfile.open(path, "r:gz") as tar:
        members = []
        for info in tar.getmembers():
            handle = tar.extractfile(info)
            assert handle is not None
            members.append((info.name, handle.read()))
        return members
