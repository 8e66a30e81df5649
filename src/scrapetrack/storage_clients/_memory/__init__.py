from ._key_value_store_client import MemoryKeyValueStoreClient
from ._storage_client import MemoryStorageClient

__all__ = [
    'MemoryKeyValueStoreClient',
    'MemoryStorageClient',
]
