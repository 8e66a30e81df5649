from ._base import KeyValueStoreClient, StorageClient
from ._file_system import FileSystemStorageClient
from ._memory import MemoryStorageClient

__all__ = [
    'FileSystemStorageClient',
    'KeyValueStoreClient',
    'MemoryStorageClient',
    'StorageClient',
]
