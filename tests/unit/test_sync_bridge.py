import asyncio
import warnings

import pytest

from promdebug.cli import sync_bridge


async def _simple_coroutine(value: int) -> int:
    await asyncio.sleep(0)
    return value


async def _spawn_background_task() -> None:
    async def _background() -> None:
        await asyncio.sleep(0)

    _ = asyncio.create_task(_background())
    await asyncio.sleep(0)


def test_await_sync_reuse_no_resource_warning(recwarn: pytest.WarningsRecorder) -> None:
    warnings.simplefilter("always", ResourceWarning)

    assert sync_bridge.await_sync(_simple_coroutine(1)) == 1
    assert sync_bridge.await_sync(_simple_coroutine(2)) == 2

    resource_warnings = [w for w in recwarn if w.category is ResourceWarning]
    assert not resource_warnings


def test_await_sync_cancels_background_tasks() -> None:
    sync_bridge.await_sync(_spawn_background_task())
    sync_bridge.await_sync(_simple_coroutine(3))


def test_close_sync_bridge_loop_is_idempotent() -> None:
    sync_bridge.await_sync(_simple_coroutine(4))
    sync_bridge.close_sync_bridge_loop()
    sync_bridge.close_sync_bridge_loop()
    assert sync_bridge.await_sync(_simple_coroutine(5)) == 5


@pytest.mark.asyncio
async def test_await_sync_refuses_running_loop() -> None:
    coro = _simple_coroutine(6)
    with pytest.raises(RuntimeError):
        sync_bridge.await_sync(coro)
    await coro
