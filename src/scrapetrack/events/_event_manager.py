from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from functools import wraps
from logging import getLogger
from typing import TYPE_CHECKING, Any, Union, cast

from pyee.asyncio import AsyncIOEventEmitter

from scrapetrack._utils.context import ensure_context
from scrapetrack._utils.docs import docs_group
from scrapetrack._utils.wait import wait_for_all_tasks_for_finish

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from datetime import timedelta
    from types import TracebackType

    from scrapetrack.events._types import Event, EventData, EventListener, WrappedListener

logger = getLogger(__name__)


@docs_group('Classes')
class EventManager:
    """Register listeners for session lifecycle events and deliver emitted events to them.

    Built on top of `pyee.asyncio.AsyncIOEventEmitter`. Every listener call runs as its own asyncio task, so a slow
    or failing listener never blocks the session registry. Exceptions raised by listeners are logged and dropped.
    Leaving the async context waits for all running listeners.

    ### Usage

    ```python
    from scrapetrack.events import Event, EventManager, EventSessionData

    async def on_progress(data: EventSessionData) -> None:
        print(f'{data.session_id}: {data.percentage}%')

    async with EventManager() as event_manager:
        event_manager.on(event=Event.SESSION_PROGRESS, listener=on_progress)
        ...
    ```
    """

    def __init__(self, *, close_timeout: timedelta | None = None) -> None:
        """Initialize a new instance.

        Args:
            close_timeout: Optional timeout for canceling pending event listeners if they exceed this duration.
        """
        self._close_timeout = close_timeout

        self._event_emitter = AsyncIOEventEmitter()

        # References to running listener tasks, so that we can wait for them to finish.
        self._listener_tasks: set[asyncio.Task] = set()

        # event -> listener -> [wrapped_listener_1, wrapped_listener_2, ...]
        self._listeners_to_wrappers: dict[Event, dict[EventListener[Any], list[WrappedListener]]] = defaultdict(
            lambda: defaultdict(list),
        )

        self._active = False

    @property
    def active(self) -> bool:
        """Indicate whether the context is active."""
        return self._active

    async def __aenter__(self) -> EventManager:
        """Activate the event manager upon entering the async context.

        Raises:
            RuntimeError: If the context manager is already active.
        """
        if self._active:
            raise RuntimeError(f'The {self.__class__.__name__} is already active.')

        self._active = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_traceback: TracebackType | None,
    ) -> None:
        """Wait for all running listeners and drop all registrations upon exiting the async context.

        Raises:
            RuntimeError: If the context manager is not active.
        """
        if not self._active:
            raise RuntimeError(f'The {self.__class__.__name__} is not active.')

        await self.wait_for_all_listeners_to_complete(timeout=self._close_timeout)
        self._event_emitter.remove_all_listeners()
        self._listener_tasks.clear()
        self._listeners_to_wrappers.clear()
        self._active = False

    def on(self, *, event: Event, listener: EventListener[Any]) -> None:
        """Register an event listener for a specific event.

        Args:
            event: The event for which to listen to.
            listener: The function (sync or async) which is to be called when the event is emitted.
        """
        signature = inspect.signature(listener)

        @wraps(cast('Callable[..., Union[None, Awaitable[None]]]', listener))
        async def listener_wrapper(event_data: EventData) -> None:
            try:
                bound_args = signature.bind(event_data)
            except TypeError:  # Parameterless listener
                bound_args = signature.bind()

            # Sync listeners run in a worker thread so they cannot block the event loop
            coro = (
                listener(*bound_args.args, **bound_args.kwargs)
                if asyncio.iscoroutinefunction(listener)
                else asyncio.to_thread(cast('Callable[..., None]', listener), *bound_args.args, **bound_args.kwargs)
            )

            listener_task = asyncio.create_task(coro, name=f'Task-{event.value}-{listener.__name__}')
            self._listener_tasks.add(listener_task)

            try:
                await listener_task
            except Exception:
                logger.exception(
                    'Exception in the event listener',
                    extra={'event_name': event.value, 'listener_name': listener.__name__},
                )
            finally:
                self._listener_tasks.discard(listener_task)

        self._listeners_to_wrappers[event][listener].append(listener_wrapper)
        self._event_emitter.add_listener(event.value, listener_wrapper)

    def off(self, *, event: Event, listener: EventListener[Any] | None = None) -> None:
        """Remove a specific listener or all listeners for an event.

        Args:
            event: The event for which to remove listeners.
            listener: The listener which is supposed to be removed. If not passed, all listeners of this event
                are removed.
        """
        if listener:
            for listener_wrapper in self._listeners_to_wrappers[event][listener]:
                self._event_emitter.remove_listener(event.value, listener_wrapper)
            self._listeners_to_wrappers[event][listener] = []
        else:
            self._listeners_to_wrappers[event] = defaultdict(list)
            self._event_emitter.remove_all_listeners(event.value)

    @ensure_context
    def emit(self, *, event: Event, event_data: EventData) -> None:
        """Emit an event with the associated data to all registered listeners.

        Args:
            event: The event which will be emitted.
            event_data: The data which will be passed to the event listeners.
        """
        self._event_emitter.emit(event.value, event_data)

    @ensure_context
    async def wait_for_all_listeners_to_complete(self, *, timeout: timedelta | None = None) -> None:
        """Wait for all currently executing event listeners to complete.

        Args:
            timeout: The maximum time to wait for the event listeners to finish. If they do not complete within
                the specified timeout, they will be canceled.
        """

        async def wait_for_listeners() -> None:
            results = await asyncio.gather(*self._listener_tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.exception('Event listener raised an exception.', exc_info=result)

        tasks = [asyncio.create_task(wait_for_listeners(), name=f'Task-{wait_for_listeners.__name__}')]

        await wait_for_all_tasks_for_finish(tasks=tasks, logger=logger, timeout=timeout)
