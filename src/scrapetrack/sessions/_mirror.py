from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from scrapetrack._utils.wait import wait_for_all_tasks_for_finish

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import timedelta

logger = getLogger(__name__)


class MirrorQueue:
    """Run mirror operations as background tasks, keeping the submission order per key.

    An operation starts only after the previous operation submitted under the same key has finished, whether it
    succeeded or not. Operations under different keys run concurrently.
    """

    def __init__(self) -> None:
        self._tails = dict[str, asyncio.Task[None]]()
        self._tasks = set[asyncio.Task[None]]()

    @property
    def pending(self) -> int:
        """Number of operations that have not finished yet."""
        return len(self._tasks)

    def submit(self, key: str, operation: Callable[[], Awaitable[None]]) -> asyncio.Task[None]:
        """Schedule `operation` to run after all operations previously submitted under `key`.

        Returns:
            The task running the operation. Its result carries the exception raised by the operation, if any.
        """
        previous = self._tails.get(key)

        async def run() -> None:
            if previous is not None:
                await asyncio.wait([previous])
            await operation()

        task = asyncio.create_task(run(), name=f'Task-mirror-{key}')
        self._tails[key] = task
        self._tasks.add(task)

        def on_done(done: asyncio.Task[None]) -> None:
            self._tasks.discard(done)
            if self._tails.get(key) is done:
                del self._tails[key]

        task.add_done_callback(on_done)
        return task

    async def drain(self, *, timeout: timedelta | None = None) -> None:
        """Wait for all submitted operations, cancelling those still running after the timeout."""
        if self._tasks:
            logger.debug(f'Waiting for {len(self._tasks)} pending mirror operations.')
        await wait_for_all_tasks_for_finish(list(self._tasks), logger=logger, timeout=timeout)
