from ._key_value_store_client import KeyValueStoreClient
from ._storage_client import StorageClient

__all__ = [
    'KeyValueStoreClient',
    'StorageClient',
]
