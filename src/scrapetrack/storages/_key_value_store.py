from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, TypeVar, overload

from scrapetrack._utils.docs import docs_group
from scrapetrack.configuration import Configuration
from scrapetrack.storage_clients import FileSystemStorageClient

if TYPE_CHECKING:
    from scrapetrack.storage_clients import StorageClient
    from scrapetrack.storage_clients._base import KeyValueStoreClient
    from scrapetrack.storage_clients.models import KeyValueStoreMetadata

T = TypeVar('T')

logger = getLogger(__name__)


@docs_group('Storages')
class KeyValueStore:
    """Key-value store is a storage for reading and writing data records with unique key identifiers.

    It is a thin, backend-agnostic front-end over a `KeyValueStoreClient`. The history store keeps its whole record
    array under a single key of one key-value store, so swapping the storage client decides whether the history
    survives a restart.

    ### Usage

    ```python
    from scrapetrack.storages import KeyValueStore

    kvs = await KeyValueStore.open(name='history')

    await kvs.set_value('scraping_history', [{'id': 'abc', 'status': 'completed'}])
    history = await kvs.get_value('scraping_history', [])
    ```
    """

    def __init__(self, client: KeyValueStoreClient, id: str, name: str | None) -> None:
        """Initialize a new instance.

        Preferably use the `KeyValueStore.open` constructor to create a new instance.

        Args:
            client: An instance of a key-value store client.
            id: The unique identifier of the storage.
            name: The name of the storage, if available.
        """
        self._client = client
        self._id = id
        self._name = name

    @property
    def id(self) -> str:
        """Get the storage ID."""
        return self._id

    @property
    def name(self) -> str | None:
        """Get the storage name."""
        return self._name

    async def get_metadata(self) -> KeyValueStoreMetadata:
        """Get the storage metadata."""
        return await self._client.get_metadata()

    @classmethod
    async def open(
        cls,
        *,
        name: str | None = None,
        configuration: Configuration | None = None,
        storage_client: StorageClient | None = None,
    ) -> KeyValueStore:
        """Open a key-value store, either restore an existing one or create a new one.

        Args:
            name: The storage name. `None` opens the default store.
            configuration: Configuration object used during the storage creation or restoration process.
            storage_client: Underlying storage client to use. Defaults to a `FileSystemStorageClient` built from
                the configuration.
        """
        configuration = Configuration() if configuration is None else configuration
        storage_client = FileSystemStorageClient(configuration) if storage_client is None else storage_client

        client = await storage_client.create_kvs_client(name=name)
        metadata = await client.get_metadata()

        logger.debug(f'Opened key-value store {metadata.id!r} (name: {metadata.name!r}).')
        return cls(client, id=metadata.id, name=metadata.name)

    async def purge(self) -> None:
        """Remove all records from the storage, keeping the storage itself."""
        await self._client.purge()

    @overload
    async def get_value(self, key: str) -> Any: ...

    @overload
    async def get_value(self, key: str, default_value: T) -> T: ...

    @overload
    async def get_value(self, key: str, default_value: T | None = None) -> T | None: ...

    async def get_value(self, key: str, default_value: T | None = None) -> T | None:
        """Get a value from the KVS.

        Args:
            key: Key of the record to retrieve.
            default_value: Default value returned in case the record does not exist.

        Returns:
            The value associated with the given key. `default_value` is used in case the record does not exist.
        """
        record = await self._client.get_value(key=key)
        return record.value if record else default_value

    async def set_value(
        self,
        key: str,
        value: Any,
        content_type: str | None = None,
    ) -> None:
        """Set a value in the KVS.

        Args:
            key: Key of the record to set.
            value: Value to set.
            content_type: The MIME content type string.

        Raises:
            PersistenceError: If the backend fails to store the value.
        """
        await self._client.set_value(key=key, value=value, content_type=content_type)

    async def delete_value(self, key: str) -> None:
        """Delete a value from the KVS.

        Args:
            key: Key of the record to delete.
        """
        await self._client.delete_value(key=key)

    async def record_exists(self, key: str) -> bool:
        """Check if a record with the given key exists in the key-value store."""
        return await self._client.record_exists(key=key)
