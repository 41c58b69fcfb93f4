"""Run the async collector from synchronous Typer commands."""

from __future__ import annotations

import asyncio
import atexit
import threading
from collections.abc import Awaitable
from typing import TypeVar

from promdebug.infrastructure.logging import get_logger

T = TypeVar("T")

_logger = get_logger("promdebug.loop")


class _BridgeLoop:
    """One event loop shared by every :func:`await_sync` call in the process."""

    def __init__(self) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._lock = threading.Lock()

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
            _logger.debug("sync_bridge.loop_created")
        return self._loop

    @staticmethod
    def _drain(loop: asyncio.AbstractEventLoop) -> None:
        leftovers = [task for task in asyncio.all_tasks(loop) if not task.done()]
        if not leftovers:
            return
        for task in leftovers:
            task.cancel()
        loop.run_until_complete(asyncio.gather(*leftovers, return_exceptions=True))
        _logger.debug("sync_bridge.cancelled_tasks", count=len(leftovers))

    def run(self, awaitable: Awaitable[T]) -> T:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError("await_sync cannot be used inside a running event loop")

        with self._lock:
            loop = self._ensure_loop()
            asyncio.set_event_loop(loop)
            try:
                return loop.run_until_complete(awaitable)
            finally:
                self._drain(loop)
                asyncio.set_event_loop(None)

    def close(self) -> None:
        with self._lock:
            loop, self._loop = self._loop, None
            if loop is None or loop.is_closed():
                return
            try:
                self._drain(loop)
            finally:
                loop.close()


_BRIDGE = _BridgeLoop()
atexit.register(_BRIDGE.close)


def await_sync(awaitable: Awaitable[T]) -> T:
    """Block until ``awaitable`` completes on the shared loop and return its result.

    Tasks the awaitable leaves behind are cancelled before returning.
    """

    return _BRIDGE.run(awaitable)


def close_sync_bridge_loop() -> None:
    _BRIDGE.close()


__all__ = ["await_sync", "close_sync_bridge_loop"]
