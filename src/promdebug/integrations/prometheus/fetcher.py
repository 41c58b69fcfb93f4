"""HTTP access to a server's diagnostic endpoints."""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any

import httpx

from promdebug.config.constants import DEFAULT_FETCH_TIMEOUT
from promdebug.infrastructure.errors import (
    ResourceNetworkError,
    ResourceReadError,
    ResourceStatusError,
)
from promdebug.infrastructure.logging import BoundLogger, get_logger

USER_AGENT = "promdebug"


def create_client(*, timeout: float = DEFAULT_FETCH_TIMEOUT, verify: bool | str = True) -> httpx.AsyncClient:
    client_kwargs: dict[str, Any] = {
        "headers": {"User-Agent": USER_AGENT},
        "timeout": httpx.Timeout(timeout),
        "verify": verify,
        "follow_redirects": True,
    }
    return httpx.AsyncClient(**client_kwargs)


class ResourceFetcher:
    """Issue one bounded GET per resource; no retries.

    When no client is supplied the fetcher creates one and closes it on
    :meth:`aclose` (or when used as an async context manager).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        verify: bool | str = True,
        logger: BoundLogger | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._owns_client = client is None
        self._client = client or create_client(timeout=timeout, verify=verify)
        self._timeout = timeout
        self._logger = logger or get_logger("promdebug.fetcher")

    @property
    def timeout(self) -> float:
        return self._timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ResourceFetcher":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def fetch(self, server_address: str, path: str) -> bytes:
        """Return the body of ``GET server_address + path``.

        Raises
        ------
        ResourceNetworkError
            Connection failure or timeout.
        ResourceStatusError
            Non-2xx response.
        ResourceReadError
            The body could not be read completely.
        """

        if not server_address:
            raise ValueError("server_address must not be empty")
        if not path or not path.startswith("/"):
            raise ValueError("path must be non-empty and start with '/'")

        url = f"{server_address.rstrip('/')}{path}"
        self._logger.debug("fetch.start", resource=path, url=url)
        try:
            async with asyncio.timeout(self._timeout):
                return await self._get(url, path)
        except TimeoutError as exc:
            raise ResourceNetworkError(
                f"GET {url} timed out after {self._timeout:g}s",
                resource=path,
                url=url,
            ) from exc

    async def _get(self, url: str, path: str) -> bytes:
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise ResourceStatusError(
                        f"GET {url} returned HTTP {response.status_code}",
                        status_code=response.status_code,
                        resource=path,
                        url=url,
                    )
                try:
                    body = await response.aread()
                except httpx.TimeoutException as exc:
                    raise ResourceNetworkError(
                        f"GET {url} timed out while reading the body",
                        resource=path,
                        url=url,
                    ) from exc
                except httpx.HTTPError as exc:
                    raise ResourceReadError(
                        f"reading body of {url} failed: {exc}",
                        resource=path,
                        url=url,
                    ) from exc
        except httpx.InvalidURL as exc:
            raise ResourceNetworkError(
                f"GET {url} rejected: {exc}",
                resource=path,
                url=url,
            ) from exc
        except httpx.TimeoutException as exc:
            raise ResourceNetworkError(
                f"GET {url} timed out: {exc}",
                resource=path,
                url=url,
            ) from exc
        except httpx.HTTPError as exc:
            raise ResourceNetworkError(
                f"GET {url} failed: {exc}",
                resource=path,
                url=url,
            ) from exc

        self._logger.debug("fetch.done", resource=path, bytes=len(body))
        return body


__all__ = ["USER_AGENT", "ResourceFetcher", "create_client"]
