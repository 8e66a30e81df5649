from __future__ import annotations

from collections.abc import Callable, Coroutine
from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from scrapetrack._types import SessionStatus
from scrapetrack._utils.docs import docs_group


class Event(str, Enum):
    """Names of all possible events that can be emitted using an `EventManager`."""

    SESSION_STARTED = 'sessionStarted'
    SESSION_PROGRESS = 'sessionProgress'
    SESSION_COMPLETED = 'sessionCompleted'
    SESSION_CANCELLED = 'sessionCancelled'


@docs_group('Event payloads')
class EventSessionData(BaseModel):
    """Data for all session lifecycle events, a snapshot of the session taken when the event was emitted."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: Annotated[str, Field(alias='sessionId')]
    log_id: Annotated[str, Field(alias='logId')]
    status: Annotated[SessionStatus, Field(alias='status')]
    scraped: Annotated[NonNegativeInt, Field(alias='scraped')]
    failed: Annotated[NonNegativeInt, Field(alias='failed')]
    total: Annotated[NonNegativeInt, Field(alias='total')]
    percentage: Annotated[NonNegativeInt, Field(alias='percentage')]

    error_message: Annotated[str | None, Field(alias='errorMessage')] = None
    """Set for cancelled sessions."""


EventData = EventSessionData
"""A helper type for all possible event payloads"""

WrappedListener = Callable[..., Coroutine[Any, Any, None]]

TEvent = TypeVar('TEvent')
EventListener = (
    Callable[
        [TEvent],
        None | Coroutine[Any, Any, None],
    ]
    | Callable[
        [],
        None | Coroutine[Any, Any, None],
    ]
)
"""An event listener function - it can be both sync and async and may accept zero or one argument."""
