from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING

import pytest

from scrapetrack.sessions._mirror import MirrorQueue

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


async def test_operations_of_one_key_run_in_order() -> None:
    queue = MirrorQueue()
    calls: list[int] = []

    def make_operation(index: int, delay: float) -> Callable[[], Awaitable[None]]:
        async def operation() -> None:
            await asyncio.sleep(delay)
            calls.append(index)

        return operation

    tasks = [queue.submit('session-1', make_operation(index, delay)) for index, delay in enumerate([0.05, 0.0, 0.02])]
    await asyncio.gather(*tasks)

    assert calls == [0, 1, 2]
    assert queue.pending == 0


async def test_different_keys_run_concurrently() -> None:
    queue = MirrorQueue()
    calls: list[str] = []
    release = asyncio.Event()

    async def blocked() -> None:
        await release.wait()
        calls.append('blocked')

    async def free() -> None:
        calls.append('free')
        release.set()

    first = queue.submit('session-1', blocked)
    second = queue.submit('session-2', free)
    await asyncio.gather(first, second)

    assert calls == ['free', 'blocked']


async def test_failed_operation_does_not_stop_the_chain() -> None:
    queue = MirrorQueue()
    calls: list[str] = []

    async def failing() -> None:
        raise RuntimeError('remote log is down')

    async def succeeding() -> None:
        calls.append('done')

    failed_task = queue.submit('session-1', failing)
    next_task = queue.submit('session-1', succeeding)

    with pytest.raises(RuntimeError, match='remote log is down'):
        await failed_task

    await next_task
    assert calls == ['done']


async def test_drain_waits_for_pending_operations() -> None:
    queue = MirrorQueue()
    calls: list[int] = []

    async def operation() -> None:
        await asyncio.sleep(0.05)
        calls.append(1)

    queue.submit('session-1', operation)
    queue.submit('session-2', operation)
    assert queue.pending == 2

    await queue.drain()

    assert calls == [1, 1]
    assert queue.pending == 0


async def test_drain_cancels_after_timeout() -> None:
    queue = MirrorQueue()

    async def operation() -> None:
        await asyncio.sleep(10)

    task = queue.submit('session-1', operation)
    await queue.drain(timeout=timedelta(milliseconds=50))

    assert task.cancelled()
    assert queue.pending == 0


async def test_drain_without_operations() -> None:
    await MirrorQueue().drain()
