from __future__ import annotations

from typing_extensions import override

from scrapetrack._utils.docs import docs_group
from scrapetrack.configuration import Configuration
from scrapetrack.storage_clients._base import StorageClient

from ._key_value_store_client import MemoryKeyValueStoreClient


@docs_group('Storage clients')
class MemoryStorageClient(StorageClient):
    """Memory implementation of the storage client.

    Key-value stores opened through this client keep all data in Python dictionaries. Nothing is persisted
    between process runs. Useful for tests and for processes that do not need their history to survive a restart.
    """

    def __init__(self, configuration: Configuration | None = None) -> None:
        """Initialize a new instance.

        Args:
            configuration: Configuration to use, a default one is created if not provided.
        """
        self._configuration = configuration or Configuration()

    @override
    async def create_kvs_client(self, *, name: str | None = None) -> MemoryKeyValueStoreClient:
        client = await MemoryKeyValueStoreClient.open(name=name)
        await self._purge_if_needed(client, self._configuration)
        return client
