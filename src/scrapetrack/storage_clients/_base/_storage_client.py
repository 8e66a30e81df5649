from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from scrapetrack._utils.docs import docs_group

if TYPE_CHECKING:
    from scrapetrack.configuration import Configuration

    from ._key_value_store_client import KeyValueStoreClient


@docs_group('Abstract classes')
class StorageClient(ABC):
    """Base class for storage clients.

    A storage client opens key-value store clients for one backend (memory, file system, ...). The session
    history is kept in a key-value store, so swapping the storage client decides where the history lives.
    """

    @abstractmethod
    async def create_kvs_client(self, *, name: str | None = None) -> KeyValueStoreClient:
        """Create a key-value store client."""

    async def _purge_if_needed(self, client: KeyValueStoreClient, configuration: Configuration) -> None:
        """Purge the client if the configuration asks for it and the store is unnamed.

        Named stores are considered global and will typically outlive the run, so they are never purged.
        """
        metadata = await client.get_metadata()
        if configuration.purge_on_start and metadata.name is None:
            await client.purge()
