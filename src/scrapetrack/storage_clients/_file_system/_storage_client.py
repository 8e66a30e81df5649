from __future__ import annotations

from typing_extensions import override

from scrapetrack._utils.docs import docs_group
from scrapetrack.configuration import Configuration
from scrapetrack.storage_clients._base import StorageClient

from ._key_value_store_client import FileSystemKeyValueStoreClient


@docs_group('Storage clients')
class FileSystemStorageClient(StorageClient):
    """File system implementation of the storage client.

    Key-value stores opened through this client persist their data under `Configuration.storage_dir` in JSON
    format, making it easy to inspect the session history outside of the application.

    Warning: This storage client is not safe for concurrent access from multiple processes.
    """

    def __init__(self, configuration: Configuration | None = None) -> None:
        """Initialize a new instance.

        Args:
            configuration: Configuration to use, a default one is created if not provided.
        """
        self._configuration = configuration or Configuration()

    @override
    async def create_kvs_client(self, *, name: str | None = None) -> FileSystemKeyValueStoreClient:
        client = await FileSystemKeyValueStoreClient.open(name=name, configuration=self._configuration)
        await self._purge_if_needed(client, self._configuration)
        return client
