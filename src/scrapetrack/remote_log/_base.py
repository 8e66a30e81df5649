from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from scrapetrack._utils.docs import docs_group

if TYPE_CHECKING:
    from types import TracebackType

    from ._models import LogEntry, LogEntryUpdate


@docs_group('Abstract classes')
class RemoteLogClient(ABC):
    """An abstract class for clients of the remote scrape-log API.

    The remote log keeps one entry per session. The session registry creates the entry when a session starts and
    updates it on every progress change, treating it as an eventually consistent mirror of its own state.

    Implementations raise `RemoteLogError` for every failed call, whatever the underlying transport error is.
    """

    @abstractmethod
    async def create(self, entry: LogEntry) -> str:
        """Create a new log entry.

        Returns:
            The id assigned to the entry by the remote log.

        Raises:
            RemoteLogError: If the entry could not be created.
        """

    @abstractmethod
    async def update(self, log_id: str, entry: LogEntryUpdate) -> None:
        """Apply a partial update to an existing log entry.

        Raises:
            RemoteLogError: If the entry could not be updated.
        """

    async def aclose(self) -> None:  # noqa: B027
        """Release resources held by the client. Does nothing by default."""

    async def __aenter__(self) -> RemoteLogClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_traceback: TracebackType | None,
    ) -> None:
        await self.aclose()
