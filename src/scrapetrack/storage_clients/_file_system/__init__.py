from ._key_value_store_client import FileSystemKeyValueStoreClient
from ._storage_client import FileSystemStorageClient

__all__ = [
    'FileSystemKeyValueStoreClient',
    'FileSystemStorageClient',
]
