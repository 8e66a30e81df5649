from __future__ import annotations

import asyncio
from contextlib import suppress
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Collection
    from datetime import timedelta
    from logging import Logger


async def wait_for_all_tasks_for_finish(
    tasks: Collection[asyncio.Task],
    *,
    logger: Logger,
    timeout: timedelta | None = None,
) -> None:
    """Wait for all tasks to finish or until the timeout is reached.

    Tasks still running after the timeout are cancelled. Exceptions raised by finished tasks are logged and dropped,
    whoever awaited the task directly has already seen them.

    Args:
        tasks: The asyncio tasks to wait for.
        logger: Logger to use for reporting.
        timeout: How long should we wait before cancelling the tasks.
    """
    if not tasks:
        return

    tasks = list(tasks)
    timeout_secs = timeout.total_seconds() if timeout else None
    try:
        _, pending = await asyncio.wait(tasks, timeout=timeout_secs)
        if pending:
            logger.warning(f'Waiting timeout reached; canceling {len(pending)} unfinished tasks.')
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
            elif not task.cancelled() and (exc := task.exception()) is not None:
                logger.debug(f'Task {task.get_name()} finished with an exception: {exc!r}')
