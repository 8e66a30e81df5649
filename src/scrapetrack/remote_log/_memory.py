from __future__ import annotations

from logging import getLogger

from typing_extensions import override

from scrapetrack._utils.crypto import crypto_random_object_id
from scrapetrack._utils.docs import docs_group
from scrapetrack.errors import RemoteLogError

from ._base import RemoteLogClient
from ._models import LogEntry, LogEntryUpdate

logger = getLogger(__name__)


@docs_group('Remote log clients')
class MemoryRemoteLogClient(RemoteLogClient):
    """In-process remote log, used when no remote log API is configured and in tests.

    Entries are kept in a dictionary and every applied update is recorded in `updates`, in the order it arrived.
    """

    def __init__(self) -> None:
        self.entries = dict[str, LogEntry]()
        """Current state of every entry, keyed by its id."""

        self.updates = list[tuple[str, LogEntryUpdate]]()
        """All applied updates in arrival order."""

    @override
    async def create(self, entry: LogEntry) -> str:
        log_id = crypto_random_object_id(24)
        self.entries[log_id] = entry.model_copy(deep=True)
        logger.debug(f'Created scrape log {log_id} ({entry.status}, {entry.action}).')
        return log_id

    @override
    async def update(self, log_id: str, entry: LogEntryUpdate) -> None:
        current = self.entries.get(log_id)
        if current is None:
            raise RemoteLogError(f'Scrape log {log_id} not found', status_code=404)

        changes = entry.model_dump(exclude_none=True)
        self.entries[log_id] = LogEntry.model_validate({**current.model_dump(), **changes})
        self.updates.append((log_id, entry.model_copy(deep=True)))
