from __future__ import annotations

import sys
from typing import Any

from typing_extensions import override

from scrapetrack._utils.crypto import crypto_random_object_id
from scrapetrack._utils.file import infer_mime_type
from scrapetrack._utils.time import utc_now
from scrapetrack.storage_clients._base import KeyValueStoreClient
from scrapetrack.storage_clients.models import KeyValueStoreMetadata, KeyValueStoreRecord


class MemoryKeyValueStoreClient(KeyValueStoreClient):
    """Memory implementation of the key-value store client.

    This client stores data in memory as Python dictionaries. No data is persisted between process runs, so the
    session history kept in it is lost when the program terminates. It is primarily useful for testing and for
    short-lived processes.
    """

    def __init__(self, *, metadata: KeyValueStoreMetadata) -> None:
        """Initialize a new instance.

        Preferably use the `MemoryKeyValueStoreClient.open` class method to create a new instance.
        """
        self._metadata = metadata

        self._records = dict[str, KeyValueStoreRecord]()
        """Dictionary to hold key-value records."""

    @override
    async def get_metadata(self) -> KeyValueStoreMetadata:
        return self._metadata

    @classmethod
    async def open(cls, *, name: str | None) -> MemoryKeyValueStoreClient:
        """Create a new memory key-value store client.

        Memory stores are never shared, so a new empty store is created on every call.

        Args:
            name: The name of the key-value store. If not provided, the store will be unnamed.
        """
        now = utc_now()
        metadata = KeyValueStoreMetadata(id=crypto_random_object_id(), name=name, created_at=now, modified_at=now)
        return cls(metadata=metadata)

    @override
    async def purge(self) -> None:
        self._records.clear()
        self._metadata.modified_at = utc_now()

    @override
    async def get_value(self, *, key: str) -> KeyValueStoreRecord | None:
        return self._records.get(key)

    @override
    async def set_value(self, *, key: str, value: Any, content_type: str | None = None) -> None:
        self._records[key] = KeyValueStoreRecord(
            key=key,
            value=value,
            content_type=content_type or infer_mime_type(value),
            size=sys.getsizeof(value),
        )
        self._metadata.modified_at = utc_now()

    @override
    async def delete_value(self, *, key: str) -> None:
        if self._records.pop(key, None) is not None:
            self._metadata.modified_at = utc_now()

    @override
    async def record_exists(self, *, key: str) -> bool:
        return key in self._records
